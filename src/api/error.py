"""API error type

Use case errors are raised as ClientError by the routes and rendered as
{"error": {"code", "message", "reason"}}.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from libs.result import Error


class ClientError(Exception):
    def __init__(self, error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code

    def to_dict(self) -> dict:
        body = {"code": self.error.code, "message": self.error.message}
        if self.error.reason:
            body["reason"] = self.error.reason
        return {"error": body}


async def client_error_handler(request: Request, exc: ClientError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
