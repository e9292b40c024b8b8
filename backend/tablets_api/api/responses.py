"""Result Rendering: OperationResult → Starlette response.

Invariants:
    - 204 results render with no body and no content-type
    - Every other result renders as JSON
"""

from fastapi import status
from fastapi.responses import JSONResponse, Response

from tablets_api.core.domain_types import OperationResult


def render(result: OperationResult) -> Response:
    if result.status_code == status.HTTP_204_NO_CONTENT or result.body is None:
        return Response(status_code=result.status_code)
    return JSONResponse(status_code=result.status_code, content=result.body)
