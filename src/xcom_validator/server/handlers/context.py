from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ...auth.pipeline import AuthContext
from ...schema.engine import ValidatedRequest
from ...schema.loader import OpenApiOperationDescriptor
from ...schema.pagination import PaginationWindow
from ..controllers.registry import Controllers


@dataclass(frozen=True)
class RequestContext:
    """Everything a handler sees once a request passed authentication and validation."""

    operation: OpenApiOperationDescriptor
    auth: AuthContext
    request: ValidatedRequest
    window: Optional[PaginationWindow]
    controllers: Controllers

    @property
    def params(self) -> Dict[str, Any]:
        return self.request.params

    @property
    def query(self) -> Dict[str, Any]:
        return self.request.query

    @property
    def body(self) -> Any:
        return self.request.body


# returns the success payload, or None for an empty response
Handler = Callable[[RequestContext], Any]
