# timeleave_api/common/http.py
from flask import jsonify


def ok(data=None, status=200, **meta):
    payload = {"success": True, "data": data}
    if meta:
        payload["meta"] = meta
    return jsonify(payload), status


def fail(message="Bad Request", status=400, code=None, detail=None, errors=None):
    err = {"message": message}
    if code: err["code"] = code
    if detail: err["detail"] = detail
    if errors: err["errors"] = errors
    return jsonify({"success": False, "error": err}), status


def respond(result, status=200):
    """Render an ActionResult with the standard envelope."""
    if result.success:
        meta = {"message": result.message} if result.message else {}
        return ok(result.data, status=status, **meta)
    return fail(result.error, status=result.status_code, code=result.code)
