from fastapi.responses import JSONResponse

from services.errors import ServiceError


def success_response(data=None, message="OK", status=200):
    return JSONResponse(
        status_code=status,
        content={
            "ok": True,
            "data": data if data is not None else {},
            "error": None,
            "message": message,
        }
    )


def error_response(error_code, status=400, message="An error occurred", data=None):
    return JSONResponse(
        status_code=status,
        content={
            "ok": False,
            "data": data if data is not None else {},
            "error": error_code,
            "message": message,
        }
    )


def service_error_response(exc: ServiceError):
    """Map a typed service failure onto the error envelope, keeping its extra fields."""
    details = {k: v for k, v in exc.to_dict().items() if k not in ("error", "message")}
    return error_response(exc.error_code, status=exc.status_code, message=exc.message, data=details)
