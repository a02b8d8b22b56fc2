from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ideavault.schemas.common import ResponseCommon as ResponseCommonSchema


class ResponseCommon(ResponseCommonSchema):
    data: Optional[Any] = None

    def to_json(self) -> dict:
        return jsonable_encoder(self)

    def to_response(self) -> JSONResponse:
        return JSONResponse(content=self.to_json(), status_code=self.code)

    @classmethod
    def success_response(
        cls,
        data: Optional[Any] = None,
        message: str = "SUCCESSFULLY",
        code: int = status.HTTP_200_OK,
    ) -> "ResponseCommon":
        return cls(code=code, success=True, message=message, data=data)

    @classmethod
    def error_response(
        cls,
        message: str,
        code: int = status.HTTP_400_BAD_REQUEST,
        data: Optional[Any] = None,
    ) -> "ResponseCommon":
        return cls(code=code, success=False, message=message, data=data)
