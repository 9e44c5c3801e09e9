# Overview: JSON envelope helpers shared by the blueprints.

from flask import jsonify

from ..errors import ValesError


def ok(status: int = 200, **payload):
    return jsonify({"success": True, **payload}), status


def fail(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def from_error(exc: ValesError):
    return fail(exc.message, exc.status_code)
