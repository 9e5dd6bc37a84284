# scripts/shopify_check.py
# Sanity check your Shopify shop domain + Admin API token.
# Runs one customer search (read-only) and prints what came back:
#   python scripts/shopify_check.py --email someone@example.com
import argparse
import pathlib
import sys

# Ensure project root (the directory that contains 'app/') is on sys.path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.config import ShopifyCredentials, get_settings  # noqa: E402
from app.errors import ConfigurationError, UpstreamError  # noqa: E402
from app.integrations.shopify import ShopifyClient  # noqa: E402


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Check Shopify credentials with a customer search")
    ap.add_argument("--email", default="check@example.com", help="email to search for")
    args = ap.parse_args(argv)

    settings = get_settings()
    try:
        creds = ShopifyCredentials.from_settings(settings)
    except ConfigurationError:
        print("❌ SHOPIFY_SHOP_DOMAIN / SHOPIFY_ACCESS_TOKEN missing (check your .env).")
        return 1

    print("Shop:", creds.shop_domain, "| API version:", creds.api_version)
    try:
        with ShopifyClient(creds, timeout=settings.SHOPIFY_TIMEOUT_S or 20) as client:
            customers = client.search_customers_by_email(args.email)
    except UpstreamError as e:
        if e.upstream_status is None:
            print("❌ Request error:", e.upstream_body)
            return 3
        print("HTTP:", e.upstream_status)
        print("Body:", e.upstream_body)
        print("❌ Token check failed.")
        return 2

    print(f"✅ Token OK. {len(customers)} customer(s) match {args.email}")
    for c in customers[:5]:
        print(f"  - id={c.id} tags={c.tags!r}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
