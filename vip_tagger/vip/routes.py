# vip/routes.py
from flask import Blueprint, current_app, jsonify, request

from .verify import HMAC_HEADER

bp = Blueprint("vip", __name__)


def _vip():
    return current_app.extensions["vip"]


@bp.get("/")
def status():
    cfg = _vip()["config"]
    return jsonify({
        "ok": True,
        "service": "vip-tagger",
        "status": "running",
        "threshold": str(cfg.vip_threshold),
        "tag": cfg.vip_tag,
    }), 200


@bp.get("/ping")
def ping():
    return jsonify({"ok": True, "service": "vip", "msg": "pong"}), 200


def _order_webhook(topic: str):
    dispatcher = _vip()["dispatcher"]
    resp = dispatcher.handle(request.get_data(cache=False), request.headers.get(HMAC_HEADER), topic=topic)
    return jsonify(resp.body), resp.status


@bp.post("/webhooks/orders/paid")
def order_paid():
    return _order_webhook("orders/paid")


@bp.post("/webhooks/orders/create")
def order_create():
    return _order_webhook("orders/create")
