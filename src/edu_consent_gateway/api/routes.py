"""
Student Data API Routes

Flask Blueprint for the off-chain side of the platform:
- POST /api/wallets - Register a wallet and issue its cid
- GET /api/wallet/<address> - Look up a wallet registration
- GET /api/student-data/<cid> - Consent-gated student record
- GET /api/data-types - Data type enumeration
- GET /api/contracts/meta - Contract addresses and ABIs for clients
- GET /health - Liveness with database and RPC status

Requesters identify themselves with the X-Requester-Address header; the
consent contract is the only authority on what they may read.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request
from sqlalchemy import text

from ..chain.addresses import AddressError
from ..chain.contracts import ALL_DATA_TYPES
from ..gateway.student_data import StudentNotFound, Unauthorized
from ..wallets.wallet_service import (
    STATUS_CONFLICT,
    STATUS_CREATED,
    STATUS_DUPLICATE,
)
from .dependencies import (
    error_response,
    get_chain,
    get_db,
    get_student_data_gateway,
    get_wallet_service,
    internal_error,
)

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)
health_bp = Blueprint('health', __name__)

REQUESTER_HEADER = 'X-Requester-Address'

REGISTRATION_STATUS_CODES = {
    STATUS_CREATED: 201,
    STATUS_CONFLICT: 409,
    STATUS_DUPLICATE: 409,
}


# ============================================================================
# Health Check
# ============================================================================

@health_bp.route('/health', methods=['GET'])
def health():
    """
    Health check endpoint.

    Returns:
        {"status": "ok", "database": "...", "rpc": "..."} with 200 OK
    """
    database = "connected"
    try:
        get_db().execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        database = "unavailable"

    rpc = "connected" if get_chain().is_connected() else "unavailable"

    return jsonify({
        "status": "ok" if database == rpc == "connected" else "degraded",
        "database": database,
        "rpc": rpc,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }), 200


# ============================================================================
# Wallet Registration
# ============================================================================

@api_bp.route('/wallets', methods=['POST'])
def register_wallet():
    """
    Register a wallet and issue its cid.

    Request Body:
        {
            "walletAddress": "0x...",
            "displayName": "Alice"
        }

    Response (201):
        {
            "success": true,
            "cid": "cid_...",
            "wallet": {...}
        }

    Errors:
        400 - Missing or invalid fields
        409 - Wallet already registered (body carries the existing cid)
    """
    try:
        data = request.get_json(silent=True)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return error_response("Invalid request", "JSON object body required", 400)
        wallet_address = data.get('walletAddress')
        display_name = data.get('displayName')

        if not wallet_address or not display_name:
            return error_response(
                "Missing required fields",
                "walletAddress and displayName are required",
                400
            )

        result = get_wallet_service().register(wallet_address, display_name)
        status_code = REGISTRATION_STATUS_CODES.get(result.status, 500)

        return jsonify(result.to_dict()), status_code

    except AddressError as e:
        return error_response("Invalid wallet address", str(e), 400)
    except ValueError as e:
        return error_response("Invalid request", str(e), 400)
    except Exception as e:
        logger.exception("Wallet registration error")
        return internal_error(e)


@api_bp.route('/wallet/<address>', methods=['GET'])
def get_wallet(address: str):
    """
    Look up the registration for a wallet address.

    Errors:
        400 - Invalid address
        404 - No registration for this address
    """
    try:
        wallet = get_wallet_service().get_by_address(address)
        if wallet is None:
            return error_response("Wallet not found", "No wallet with this address exists", 404)

        return jsonify({"success": True, "wallet": wallet.to_dict()}), 200

    except AddressError as e:
        return error_response("Invalid address", str(e), 400)
    except Exception as e:
        logger.exception("Wallet lookup error")
        return internal_error(e)


# ============================================================================
# Consent-gated Student Data
# ============================================================================

@api_bp.route('/student-data/<cid>', methods=['GET'])
def get_student_data(cid: str):
    """
    Return the sections of a student's record the requester holds consent for.

    Headers:
        X-Requester-Address: requester wallet address

    Response:
        {
            "success": true,
            "studentAddress": "0x...",
            "data": {
                "basicProfile": {...} | null,
                "academicRecord": {...} | null,
                "socialProfile": {...} | null
            },
            "consents": {"0": true, "1": false, "2": false}
        }

    Errors:
        401 - Missing X-Requester-Address header
        404 - Unknown cid
    """
    try:
        result = get_student_data_gateway().get_student_data(
            cid,
            request.headers.get(REQUESTER_HEADER)
        )
        return jsonify(result.to_dict()), 200

    except StudentNotFound:
        return error_response("Student not found", "No student with this CID exists", 404)
    except Unauthorized as e:
        return error_response("Unauthorized", str(e), 401)
    except Exception as e:
        logger.exception("Student data error")
        return internal_error(e)


# ============================================================================
# Static Metadata
# ============================================================================

@api_bp.route('/data-types', methods=['GET'])
def get_data_types():
    """List the consent data types."""
    return jsonify({
        "success": True,
        "dataTypes": [dt.to_dict() for dt in ALL_DATA_TYPES]
    }), 200


@api_bp.route('/contracts/meta', methods=['GET'])
def get_contracts_meta():
    """Contract addresses and ABIs for client bootstrap."""
    try:
        meta = get_chain().contract_meta()
        return jsonify({
            "success": True,
            **meta,
            "updatedAt": datetime.now(timezone.utc).isoformat()
        }), 200
    except Exception as e:
        logger.exception("Contract metadata error")
        return internal_error(e)
