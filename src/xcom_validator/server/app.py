"""Reference exchange server.

Every contract operation with a handler is mounted on a FastAPI app. A
request runs through

  authentication -> pagination guard -> request schema -> handler -> response schema

inside a worker thread, so signature checks and validation never block the
event loop. The first failing stage decides the response.
"""
from __future__ import annotations

import time
from typing import Any, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from ..auth.canonical import request_target
from ..auth.nonce_store import NonceStore, build_nonce_store
from ..auth.pipeline import ClientRegistry, build_auth_pipeline
from ..config import ServerConfig, load_config
from ..errors import XComError
from ..obs.prom import observe_rejection, observe_response, prometheus_latest
from ..schema.engine import CompiledOperation, SchemaEngine
from ..schema.loader import OpenApiContract, load_contract
from ..schema.pagination import PaginationGuard
from ..utils.logging import get_logger
from .controllers.registry import Controllers, build_controllers
from .errors import error_response, not_found_handler
from .handlers.context import Handler, RequestContext
from .handlers.registry import HANDLERS

log = get_logger("server")


class WebApp:
    def __init__(
        self,
        contract: OpenApiContract,
        config: ServerConfig,
        *,
        nonce_store: Optional[NonceStore] = None,
        clients: Optional[ClientRegistry] = None,
        controllers: Optional[Controllers] = None,
        handlers: Optional[Mapping[str, Handler]] = None,
    ):
        self.config = config
        self.contract = contract
        self.engine = SchemaEngine.from_contract(contract)
        self.pagination = PaginationGuard()
        self.nonce_store = nonce_store if nonce_store is not None else build_nonce_store(config)
        self.auth = build_auth_pipeline(config, self.nonce_store, clients)
        self.controllers = controllers if controllers is not None else build_controllers()
        self.handlers = dict(HANDLERS if handlers is None else handlers)

        self.app = FastAPI(title="Exchange connectivity reference server")
        self.app.state.webapp = self
        self.app.add_exception_handler(404, not_found_handler)
        self._add_public_routes()
        self._add_operations()

    def _add_public_routes(self) -> None:
        @self.app.get("/__health", include_in_schema=False)
        async def health():
            return {"status": "ok", "operations": len(self.contract)}

        @self.app.get("/metrics", include_in_schema=False)
        async def metrics():
            payload, content_type = prometheus_latest()
            return Response(content=payload, media_type=content_type)

    def _add_operations(self) -> None:
        mounted = 0
        for op in self.engine.operations():
            handler = self.handlers.get(op.descriptor.operation_id)
            if handler is None:
                log.warning(f"no handler for {op.method} {op.url} ({op.descriptor.operation_id}); not mounted")
                continue
            self.app.add_api_route(
                op.url,
                self._endpoint(op, handler),
                methods=[op.method],
                name=op.descriptor.operation_id,
                include_in_schema=False,
            )
            mounted += 1
        log.info(f"mounted {mounted} of {len(self.contract)} contract operations")

    def _endpoint(self, op: CompiledOperation, handler: Handler):
        async def endpoint(request: Request) -> Response:
            start = time.time()
            body = await request.body()
            try:
                response = await run_in_threadpool(self.process, op, handler, request, body)
            except Exception as e:
                response = error_response(e, request)
            observe_response(route=op.url, http_status=response.status_code, latency_ms=(time.time() - start) * 1000.0)
            return response

        endpoint.__name__ = op.descriptor.operation_id
        return endpoint

    def process(self, op: CompiledOperation, handler: Handler, request: Request, body: bytes) -> Response:
        headers = dict(request.headers)
        query = dict(request.query_params)
        stage = "auth"
        try:
            auth = self.auth.authenticate(headers, request.method, request_target(request.scope), body)
            stage = "pagination"
            window = self.pagination.check(op.descriptor, request.query_params)
            stage = "schema"
            validated = self.engine.validate_request(
                op,
                headers=headers,
                path_params=request.path_params,
                query=query,
                content_type=headers.get("content-type"),
                raw_body=body,
            )
        except XComError as e:
            observe_rejection(stage=stage, request_part=e.request_part.value if e.request_part else None)
            raise
        ctx = RequestContext(
            operation=op.descriptor,
            auth=auth,
            request=validated,
            window=window,
            controllers=self.controllers,
        )
        payload: Any = handler(ctx)
        status = op.descriptor.success_status
        if payload is None:
            return Response(status_code=status)
        self.engine.validate_response(op, status, payload)
        return JSONResponse(payload, status_code=status)


def create_app(config: Optional[ServerConfig] = None, **kwargs: Any) -> FastAPI:
    """Build the server from `config` (or the environment); kwargs go to WebApp."""
    cfg = config or load_config()
    get_logger().setLevel(cfg.log_level.upper())
    contract = load_contract(cfg.openapi_path)
    return WebApp(contract, cfg, **kwargs).app
