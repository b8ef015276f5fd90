"""
VIP Tagger - Flask service

Endpoints:
    GET  /                          - Service status + configured threshold
    GET  /ping                      - Liveness probe
    POST /webhooks/orders/paid      - Shopify orders/paid webhook (HMAC verified)
    POST /webhooks/orders/create    - Shopify orders/create webhook (HMAC verified)

Background:
    APScheduler cron job sweeping every customer (VIP_SWEEP_CRON)
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from flask import Flask

from .config import Config
from .jobs.tasks import TaskRunner
from .shopify_client import ShopifyClient
from .vip.routes import bp as vip_bp
from .vip.service import VipClassifier
from .vip.sweep import VipSweep
from .vip.webhooks import WebhookDispatcher

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(level: Optional[str] = None):
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format=LOG_FORMAT,
    )


@dataclass
class Services:
    config: Config
    client: ShopifyClient
    classifier: VipClassifier
    sweep: VipSweep


def build_services(config: Config, client=None) -> Services:
    client = client or ShopifyClient(config)
    classifier = VipClassifier(client, config)
    sweep = VipSweep(client, classifier, workers=config.sweep_workers)
    return Services(config=config, client=client, classifier=classifier, sweep=sweep)


def create_app(config: Config, services: Optional[Services] = None, tasks=None) -> Flask:
    services = services or build_services(config)
    tasks = tasks or TaskRunner(max_workers=config.webhook_workers)

    app = Flask(__name__)
    app.extensions["vip"] = {
        "config": config,
        "services": services,
        "tasks": tasks,
        "dispatcher": WebhookDispatcher(services.classifier, tasks, secret=config.webhook_secret),
    }
    app.register_blueprint(vip_bp)
    app.logger.info(f"VIP Tag Automation service ready (threshold={config.vip_threshold}, dry_run={config.dry_run})")
    return app
