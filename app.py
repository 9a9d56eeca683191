"""
Flask Web Application for LobsterPad
Wallet manager, token launch, spam launch, metadata cloning and vanity search endpoints
"""

import base64
import json
import logging
import queue

from flask import Flask, Response, jsonify, request, stream_with_context

import config
from errors import CloneError, LaunchError, LauncherBusyError, LobsterPadError, ValidationError
from eventbus import BUS
from launch_store import LaunchHistory
from launcher import Launcher
from models import TokenMetadata
from robust_logging import get_ring_buffer_lines, get_ring_buffer_stats
from vamp import MetadataCloner, apply_to_form
from vanity import VanityJobs, VanityJobsFull
from wallet_vault import WalletVault
from wallets import WalletBook

logger = logging.getLogger(__name__)

app = Flask(__name__)

WALLET_BOOK = WalletBook(vault=WalletVault() if config.PERSIST_WALLETS else None)
LAUNCHER = Launcher(history=LaunchHistory(config.LAUNCHES_FILE))
CLONER = None
VANITY_JOBS = VanityJobs()

STATUS_CODES = {
    ValidationError: 400,
    LauncherBusyError: 409,
    LaunchError: 502,
    CloneError: 502,
}


def _get_cloner():
    global CLONER
    if CLONER is None:
        CLONER = MetadataCloner()
    return CLONER


@app.errorhandler(LobsterPadError)
def handle_lobsterpad_error(e):
    status = next((code for cls, code in STATUS_CODES.items() if isinstance(e, cls)), 500)
    return jsonify(e.to_dict()), status


def _float_field(form, key, default):
    raw = (form.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"'{key}' must be a number")


def _metadata_from_request() -> TokenMetadata:
    form = request.form
    image = request.files.get("image") or request.files.get("file")
    image_bytes = image.read() if image else None
    return TokenMetadata(
        name=(form.get("name") or "").strip(),
        symbol=(form.get("symbol") or "").strip(),
        description=(form.get("description") or "").strip(),
        twitter=(form.get("twitter") or "").strip(),
        telegram=(form.get("telegram") or "").strip(),
        website=(form.get("website") or "").strip(),
        image=image_bytes or None,
        image_filename=(image.filename if image and image.filename else "image.png"),
        image_content_type=(image.mimetype if image and image.mimetype else "image/png"),
    )


def _launch_kwargs() -> dict:
    form = request.form
    return {
        "rpc_url": (form.get("rpc_url") or "").strip() or config.SOLANA_RPC_URL,
        "amount": _float_field(form, "amount", config.DEFAULT_BUY_SOL),
        "slippage": _float_field(form, "slippage", config.DEFAULT_SLIPPAGE),
        "priority_fee": _float_field(form, "priority_fee", config.DEFAULT_PRIORITY_FEE),
        "mint_suffix": form.get("mint_suffix"),
    }


def _vanity_mint():
    """(job_id, keypair) for a finished vanity search named in the form, or (None, None)"""
    job_id = (request.form.get("vanity_job") or "").strip()
    if not job_id:
        return None, None
    try:
        return job_id, VANITY_JOBS.found_keypair(job_id)
    except KeyError:
        raise ValidationError(f"Unknown vanity job {job_id}")
    except ValueError as e:
        raise ValidationError(str(e))


def _signer_key() -> str:
    """Explicit form key wins; otherwise the active wallet's key"""
    key = (request.form.get("private_key") or "").strip()
    if not key and WALLET_BOOK.active:
        key = WALLET_BOOK.active.private_key
    return key


@app.route("/")
def home():
    return jsonify({
        "status": "online",
        "app": "LobsterPad",
        "wallets": len(WALLET_BOOK),
        "launches": len(LAUNCHER.history),
        "busy": LAUNCHER.busy,
    })


# ---- wallets ----
@app.route("/api/wallets", methods=["GET"])
def list_wallets():
    return jsonify({
        "success": True,
        "active": WALLET_BOOK.active_index,
        "wallets": [w.public_view() for w in WALLET_BOOK.list()],
    })


@app.route("/api/wallets", methods=["POST"])
def generate_wallet():
    wallet = WALLET_BOOK.generate()
    BUS.publish("wallet.created", {"message": "New wallet generated!", "address": wallet.address})
    return jsonify({"success": True, "index": WALLET_BOOK.active_index, "wallet": wallet.public_view()})


@app.route("/api/wallets/import", methods=["POST"])
def import_wallet():
    data = request.get_json(silent=True) or {}
    wallet = WALLET_BOOK.import_key(data.get("private_key", ""))
    BUS.publish("wallet.imported", {"message": "Wallet imported successfully!", "address": wallet.address})
    return jsonify({"success": True, "index": WALLET_BOOK.active_index, "wallet": wallet.public_view()})


@app.route("/api/wallets/<int:index>/select", methods=["POST"])
def select_wallet(index):
    try:
        wallet = WALLET_BOOK.select(index)
    except IndexError as e:
        return jsonify({"success": False, "error": str(e)}), 404
    return jsonify({"success": True, "index": index, "wallet": wallet.public_view()})


@app.route("/api/wallets/<int:index>/export", methods=["GET"])
def export_wallet(index):
    try:
        wallet = WALLET_BOOK.get(index)
    except IndexError as e:
        return jsonify({"success": False, "error": str(e)}), 404
    logger.info("[WALLET] private key exported for %s", wallet.address)
    return jsonify({"success": True, "address": wallet.address, "private_key": wallet.private_key})


@app.route("/api/wallets/<int:index>", methods=["DELETE"])
def delete_wallet(index):
    try:
        wallet = WALLET_BOOK.remove(index)
    except IndexError as e:
        return jsonify({"success": False, "error": str(e)}), 404
    return jsonify({"success": True, "address": wallet.address, "active": WALLET_BOOK.active_index})


# ---- launches ----
@app.route("/api/launch", methods=["POST"])
def launch_token():
    metadata = _metadata_from_request()
    job_id, mint_keypair = _vanity_mint()
    result = LAUNCHER.launch(_signer_key(), metadata, mint_keypair=mint_keypair, **_launch_kwargs())
    if job_id:
        VANITY_JOBS.discard(job_id)
    return jsonify({"success": True, "message": "Successfully launched!", **result.to_dict()})


@app.route("/api/launch/spam", methods=["POST"])
def spam_launch():
    count = request.form.get("count", "1")
    try:
        count = int(count)
    except ValueError:
        raise ValidationError("'count' must be an integer")
    metadata = _metadata_from_request()
    job_id, mint_keypair = _vanity_mint()
    report = LAUNCHER.spam_launch(count, _signer_key(), metadata, mint_keypair=mint_keypair, **_launch_kwargs())
    if job_id and report.results:
        VANITY_JOBS.discard(job_id)
    return jsonify(report.to_dict()), (200 if report.success else 502)


@app.route("/api/launches", methods=["GET"])
def launches():
    return jsonify({"success": True, "launches": LAUNCHER.history.all()})


# ---- vamp ----
@app.route("/api/vamp", methods=["POST"])
def vamp():
    data = request.get_json(silent=True) or {}
    result = _get_cloner().clone(data.get("mint", ""))
    form = apply_to_form(data.get("form") or {}, result.fields)
    BUS.publish("vamp.done", {"message": result.message, "mint": result.mint, "partial": result.partial})
    return jsonify({
        "success": True,
        "partial": result.partial,
        "message": result.message,
        "fields": result.fields,
        "form": form,
        "image_error": result.image_error,
        "image": {
            "filename": result.image_filename,
            "content_type": result.image_content_type,
            "data_b64": base64.b64encode(result.image).decode(),
        } if result.image else None,
    })


# ---- vanity ----
@app.route("/api/vanity", methods=["POST"])
def start_vanity():
    data = request.get_json(silent=True) or {}
    try:
        job = VANITY_JOBS.start(data.get("suffix", ""), max_attempts=data.get("max_attempts"))
    except ValueError as e:
        raise ValidationError(str(e))
    except VanityJobsFull as e:
        return jsonify({"success": False, "error": str(e)}), 429
    return jsonify({"success": True, "job": job.to_dict()}), 202


@app.route("/api/vanity/<job_id>", methods=["GET"])
def vanity_status(job_id):
    job = VANITY_JOBS.get(job_id)
    if not job:
        return jsonify({"success": False, "error": "Unknown job"}), 404
    return jsonify({"success": True, "job": job.to_dict()})


@app.route("/api/vanity/<job_id>", methods=["DELETE"])
def cancel_vanity(job_id):
    job = VANITY_JOBS.cancel(job_id)
    if not job:
        return jsonify({"success": False, "error": "Unknown job"}), 404
    return jsonify({"success": True, "job": job.to_dict()})


# ---- monitoring ----
@app.route("/events")
def events():
    """Server-Sent Events stream of launch/vanity/wallet status"""
    def event_stream():
        q = BUS.subscribe()
        try:
            for evt in BUS.get_recent(limit=20):
                yield f"data: {json.dumps(evt)}\n\n"
            while True:
                try:
                    evt = q.get(timeout=15)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                yield f"data: {json.dumps(evt)}\n\n"
        finally:
            BUS.unsubscribe(q)

    return Response(stream_with_context(event_stream()), mimetype="text/event-stream")


@app.route("/api/logs")
def logs_tail():
    n = request.args.get("n", "50")
    n = int(n) if n.isdigit() else 50
    level = request.args.get("level", "all")
    return jsonify({"lines": get_ring_buffer_lines(n, level), "stats": get_ring_buffer_stats()})


if __name__ == '__main__':
    from robust_logging import setup_robust_logging
    setup_robust_logging()
    app.run(debug=config.DEBUG_MODE, host=config.HOST, port=config.PORT)
