"""
response.py — JSON envelope used by every route.

    success: { "success": true,  "data": ..., "error": null }
    failure: { "success": false, "data": null, "error": { "code": int, "message": str } }
"""

from flask import jsonify


def success(data=None, status_code=200):
    return jsonify({"success": True, "data": data, "error": None}), status_code


def created(data=None):
    return success(data=data, status_code=201)


def error(message="An error occurred", status_code=400):
    payload = {
        "success": False,
        "data": None,
        "error": {"code": status_code, "message": message},
    }
    return jsonify(payload), status_code


def not_found(resource="Resource"):
    return error(f"{resource} not found", status_code=404)


def forbidden(message="Access denied"):
    return error(message, status_code=403)


def server_error(message="Internal server error"):
    return error(message, status_code=500)


def unauthorized(message="Authentication required"):
    return error(message, status_code=401)


def paginated(items, total: int, page: int, size: int):
    return success(data={
        "content":       items,
        "totalElements": total,
        "pageNumber":    page,
        "pageSize":      size,
    })
