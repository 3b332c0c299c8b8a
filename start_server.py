"""Production entry point for the Storefront API.

Binds to ``HOST``/``PORT`` from storefront.config and trusts proxy headers
from ``FORWARDED_ALLOW_IPS`` so request logs carry the real client address.
"""
import uvicorn

from storefront import config
from storefront.core.logging import configure_logging


def main() -> None:
    configure_logging()
    uvicorn.run(
        "storefront.app:app",
        host=config.HOST,
        port=config.PORT,
        proxy_headers=True,
        forwarded_allow_ips=config.FORWARDED_ALLOW_IPS,
        access_log=False,
    )


if __name__ == "__main__":
    main()
