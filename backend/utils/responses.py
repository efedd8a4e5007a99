from fastapi.responses import JSONResponse


def error_response(message, status=400):
    """Every error body is ``{"error": <message>}``."""
    return JSONResponse(status_code=status, content={"error": message})
