"""
Blockchain API Routes

Flask Blueprint exposing read-only views of the EduSystem contracts:
- GET /api/blockchain/student/<address> - On-chain student profile
- GET /api/blockchain/requester/<address> - On-chain requester profile
- GET /api/blockchain/role/<address> - Role enum (0 None, 1 Student, 2 Requester)
- GET /api/blockchain/student/<address>/consents - Consent history
- GET /api/blockchain/student/<address>/access-logs - Access-attempt audit trail
- GET /api/blockchain/consent/<owner>/<requester>/<dataType> - Consent detail
- POST /api/blockchain/check-consents - Batch consent validity check
- POST /api/blockchain/compute-email-hash - Identity contract email hash

Profile, role and hash routes pass RPC failures through as 500. Consent
routes go through ConsentQueryService and fail closed instead.
"""

import logging

from flask import Blueprint, jsonify, request

from ..chain.addresses import AddressError, normalize_address
from ..chain.contracts import InvalidDataType, parse_data_type
from .dependencies import (
    error_response,
    get_chain,
    get_consent_service,
    internal_error,
)

logger = logging.getLogger(__name__)

blockchain_bp = Blueprint('blockchain', __name__)


# ============================================================================
# Identity Endpoints
# ============================================================================

@blockchain_bp.route('/student/<address>', methods=['GET'])
def get_student_profile(address: str):
    """
    On-chain student profile.

    Errors:
        400 - Invalid address
        404 - Address is not a registered student
    """
    try:
        student = normalize_address(address)
        chain = get_chain()

        if not chain.is_student(student):
            return error_response(
                "Not a student",
                "Address is not registered as a student on the blockchain",
                404
            )

        return jsonify({"success": True, "profile": chain.get_student_profile(student)}), 200

    except AddressError as e:
        return error_response("Invalid address", str(e), 400)
    except Exception as e:
        logger.exception("Student profile error")
        return internal_error(e)


@blockchain_bp.route('/requester/<address>', methods=['GET'])
def get_requester_profile(address: str):
    """
    On-chain requester profile.

    Errors:
        400 - Invalid address
        404 - Address is not a registered requester
    """
    try:
        requester = normalize_address(address)
        chain = get_chain()

        if not chain.is_requester(requester):
            return error_response(
                "Not a requester",
                "Address is not registered as a requester on the blockchain",
                404
            )

        return jsonify({"success": True, "profile": chain.get_requester_profile(requester)}), 200

    except AddressError as e:
        return error_response("Invalid address", str(e), 400)
    except Exception as e:
        logger.exception("Requester profile error")
        return internal_error(e)


@blockchain_bp.route('/role/<address>', methods=['GET'])
def get_role(address: str):
    try:
        role = get_chain().get_role(normalize_address(address))
        return jsonify({"success": True, "role": role}), 200

    except AddressError as e:
        return error_response("Invalid address", str(e), 400)
    except Exception as e:
        logger.exception("Role lookup error")
        return internal_error(e)


@blockchain_bp.route('/compute-email-hash', methods=['POST'])
def compute_email_hash():
    """
    Hash an email address the way EduIdentity stores it.

    Request Body:
        {"email": "alice@example.edu"}

    Response:
        {"success": true, "emailHash": "0x..."}
    """
    try:
        data = request.get_json(silent=True)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return error_response("Invalid request", "JSON object body required", 400)
        email = data.get('email')
        if not email or not isinstance(email, str):
            return error_response("Missing required fields", "email is required", 400)

        return jsonify({
            "success": True,
            "emailHash": get_chain().compute_email_hash(email)
        }), 200

    except Exception as e:
        logger.exception("Email hash error")
        return internal_error(e)


# ============================================================================
# Consent Endpoints
# ============================================================================

@blockchain_bp.route('/student/<address>/consents', methods=['GET'])
def get_consent_logs(address: str):
    """
    Consent history rebuilt from grant/revoke events.

    Response:
        {
            "success": true,
            "consents": [
                {"id": "0x...-1", "requester": "0x...", "dataType": 1,
                 "expiresAt": "1767225600", "status": "active", "blockNumber": 12}
            ]
        }
    """
    try:
        owner = normalize_address(address)
        entries = get_consent_service().get_consent_logs(owner)
        return jsonify({"success": True, "consents": [e.to_dict() for e in entries]}), 200

    except AddressError as e:
        return error_response("Invalid address", str(e), 400)
    except Exception as e:
        logger.exception("Consent history error")
        return internal_error(e)


@blockchain_bp.route('/student/<address>/access-logs', methods=['GET'])
def get_access_logs(address: str):
    """Access attempts against a student's data, newest first."""
    try:
        owner = normalize_address(address)
        entries = get_consent_service().get_access_logs(owner)
        return jsonify({"success": True, "accessLogs": [e.to_dict() for e in entries]}), 200

    except AddressError as e:
        return error_response("Invalid address", str(e), 400)
    except Exception as e:
        logger.exception("Access log error")
        return internal_error(e)


@blockchain_bp.route('/consent/<owner>/<requester>/<data_type>', methods=['GET'])
def get_consent_detail(owner: str, requester: str, data_type: str):
    """
    Full consent record plus live validity.

    Errors:
        400 - Invalid dataType
        404 - No consent exists for this combination
    """
    try:
        dt = parse_data_type(data_type)

        service = get_consent_service()
        record = service.get_consent_details(owner, requester, dt)
        if record is None:
            return error_response(
                "Consent not found",
                "No consent exists for this combination",
                404
            )

        consent = record.to_dict()
        consent["isCurrentlyValid"] = service.has_valid_consent(owner, requester, dt)
        consent["dataTypeName"] = dt.label

        return jsonify({"success": True, "consent": consent}), 200

    except InvalidDataType as e:
        return error_response("Invalid data type", str(e), 400)
    except Exception as e:
        logger.exception("Consent detail error")
        return internal_error(e)


@blockchain_bp.route('/check-consents', methods=['POST'])
def check_consents():
    """
    Check several data types at once.

    Request Body:
        {
            "studentAddress": "0x...",
            "requesterAddress": "0x...",
            "dataTypes": [0, 1, 2]
        }

    Response:
        {
            "success": true,
            "studentAddress": "0x...",
            "requesterAddress": "0x...",
            "consents": {"0": true, "1": false, "2": false}
        }
    """
    try:
        data = request.get_json(silent=True)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return error_response("Invalid request", "JSON object body required", 400)
        student = data.get('studentAddress')
        requester = data.get('requesterAddress')
        data_types = data.get('dataTypes')

        if not student or not requester or not isinstance(data_types, list):
            return error_response(
                "Invalid request",
                "studentAddress, requesterAddress, and dataTypes array are required",
                400
            )

        parsed = []
        for value in data_types:
            if not isinstance(value, int) or isinstance(value, bool):
                return error_response("Invalid data type", "All dataTypes must be 0, 1, or 2", 400)
            try:
                parsed.append(parse_data_type(value))
            except InvalidDataType:
                return error_response("Invalid data type", "All dataTypes must be 0, 1, or 2", 400)

        student = normalize_address(student, "studentAddress")
        requester = normalize_address(requester, "requesterAddress")

        consents = get_consent_service().check_multiple_consents(student, requester, parsed)

        return jsonify({
            "success": True,
            "studentAddress": student,
            "requesterAddress": requester,
            "consents": {str(k): v for k, v in consents.items()}
        }), 200

    except AddressError as e:
        return error_response("Invalid address", str(e), 400)
    except Exception as e:
        logger.exception("Consent batch check error")
        return internal_error(e)
