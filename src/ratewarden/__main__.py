"""Main entry point for ratewarden."""

import uvicorn

from ratewarden.config import get_settings


def main() -> None:
    """Run the demo host behind uvicorn."""
    settings = get_settings()

    uvicorn.run(
        "ratewarden.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        # Address keys read X-Forwarded-For, so only trust it from known proxies
        proxy_headers=True,
        forwarded_allow_ips=settings.forwarded_allow_ips,
        access_log=False,
    )


if __name__ == "__main__":
    main()
