"""Storefront cart Flask application."""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask

from common.db import session as db
from common.services.cart_service import CartService
from common.services.catalog_service import CatalogService
from common.services.page_cache import PageCache
from config import StorefrontConfig
from routes import api, user


def create_app(config: Optional[StorefrontConfig] = None) -> Flask:
    config = config or StorefrontConfig.load()
    logging.basicConfig(
        level=getattr(logging, config.app.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(
        __name__,
        template_folder=str(config.template_dir),
        static_folder=str(config.static_dir),
    )
    app.config["SECRET_KEY"] = config.secret_key
    app.config["STOREFRONT_CONFIG"] = config

    db.configure(config.app.database_url)
    db.init_db()

    page_cache = PageCache(ttl_seconds=config.app.page_cache_ttl)
    catalog_service = CatalogService(db.get_session)
    components = {
        "page_cache": page_cache,
        "catalog_service": catalog_service,
        "cart_service": CartService(db.get_session, catalog=catalog_service, page_cache=page_cache),
    }
    app.extensions["storefront_components"] = components

    app.register_blueprint(user.user_bp)
    app.register_blueprint(api.api_bp)

    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=False)


if __name__ == "__main__":
    main()
