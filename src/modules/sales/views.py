"""Sale API views.

Exposes the sale lifecycle services via HTTP using a DRF ViewSet.
Payloads are parsed into Pydantic DTOs; ``SaleError`` subclasses carry
their own HTTP status and are rendered in the standard error envelope.
The view never swallows generic exceptions.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.catalog.repositories.django_repository import CatalogDjangoRepository
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.core.exceptions import error_response
from modules.sales.constants import StatusMachine
from modules.sales.dtos import CreateCommentDTO, CreateSaleDTO, TransitionRequestDTO
from modules.sales.exceptions import SaleError
from modules.sales.models import Sale
from modules.sales.repositories.django_repository import (
    SaleDjangoRepository,
    StatusHistoryDjangoRepository,
)
from modules.sales.serializers import (
    CommentSerializer,
    HistoryEntrySerializer,
    SaleSerializer,
)
from modules.sales.services import (
    SaleCommentService,
    SaleCreationCoordinator,
    SaleQueryService,
    SaleSnapshot,
    StatusTransitionEngine,
)


def _invalid_payload(exc: ValueError) -> Response:
    errors: List[Dict[str, Any]] = []
    if isinstance(exc, PydanticValidationError):
        for err in exc.errors():
            entry: Dict[str, Any] = {"code": err["type"], "detail": err["msg"]}
            attr = ".".join(str(part) for part in err["loc"])
            if attr:
                entry["attr"] = attr
            errors.append(entry)
    else:
        errors.append({"code": "invalid", "detail": str(exc)})
    return error_response("validation_error", errors, status.HTTP_400_BAD_REQUEST)


def _json_object(request: Request) -> Mapping:
    if not isinstance(request.data, Mapping):
        raise ValueError("Expected a JSON object.")
    return request.data


def _sale_error(exc: SaleError) -> Response:
    return error_response(
        exc.error_type,
        [{"code": exc.code, "detail": str(exc), **exc.extra()}],
        exc.status_code,
    )


def _render_snapshot(snapshot: SaleSnapshot) -> Dict[str, Any]:
    serializer = SaleSerializer(
        snapshot.sale,
        context={
            "commercial_status": snapshot.commercial_status,
            "logistics_status": snapshot.logistics_status,
        },
    )
    return serializer.data


class SaleViewSet(GenericViewSet):
    """ViewSet for the sale lifecycle.

    Uses the sale services with injected Django repositories (DIP).
    Does **not** extend ``ModelViewSet``: sales are created once and only
    change through their status histories.
    """

    queryset = Sale.objects.all()
    serializer_class = SaleSerializer
    lookup_value_regex = r"\d+"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        sale_repository = SaleDjangoRepository()
        history_repository = StatusHistoryDjangoRepository()
        self._engine = StatusTransitionEngine(
            sale_repository=sale_repository,
            history_repository=history_repository,
        )
        self._coordinator = SaleCreationCoordinator(
            sale_repository=sale_repository,
            client_repository=ClientDjangoRepository(),
            catalog_repository=CatalogDjangoRepository(),
            transition_engine=self._engine,
        )
        self._queries = SaleQueryService(
            sale_repository=sale_repository,
            history_repository=history_repository,
        )
        self._comments = SaleCommentService(sale_repository=sale_repository)

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttling scopes per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "sale_creation"
        elif self.action in {"estado", "logistica"}:
            throttle_scope = "sale_status"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/ventas/

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 if the key was already used, 201 for new sales.
        """
        try:
            data = _json_object(request)
            dto = CreateSaleDTO.model_validate(
                {
                    **data,
                    "seller_id": data.get("seller_id") or str(request.user.pk),
                    "idempotency_key": request.headers.get("Idempotency-Key"),
                }
            )
        except (PydanticValidationError, ValueError) as exc:
            return _invalid_payload(exc)

        try:
            result = self._coordinator.create_sale(dto)
            snapshot = self._queries.get_sale(result.sale.id)
        except SaleError as exc:
            return _sale_error(exc)

        return Response(
            _render_snapshot(snapshot),
            status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
        )

    # ------------------------------------------------------------------
    # Retrieve / History
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/ventas/{pk}/"""
        try:
            snapshot = self._queries.get_sale(pk)
        except SaleError as exc:
            return _sale_error(exc)
        return Response(_render_snapshot(snapshot))

    @action(detail=True, methods=["get"])
    def historial(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/ventas/{pk}/historial/

        Both status streams, each ordered by sequence number.
        """
        try:
            history = self._queries.get_history(pk)
        except SaleError as exc:
            return _sale_error(exc)
        return Response(
            {
                machine: HistoryEntrySerializer(entries, many=True).data
                for machine, entries in history.items()
            }
        )

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["patch"])
    def estado(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/ventas/{pk}/estado/ (commercial machine)."""
        return self._transition(request, pk, StatusMachine.COMMERCIAL)

    @action(detail=True, methods=["patch"])
    def logistica(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/ventas/{pk}/logistica/ (logistics machine)."""
        return self._transition(request, pk, StatusMachine.LOGISTICS)

    def _transition(self, request: Request, pk: str | None, machine: str) -> Response:
        try:
            data = _json_object(request)
            dto = TransitionRequestDTO(
                state=data.get("state", ""),
                description=data.get("description", ""),
                actor_id=data.get("actor_id") or str(request.user.pk),
            )
        except (PydanticValidationError, ValueError) as exc:
            return _invalid_payload(exc)

        try:
            entry = self._engine.transition(
                pk,
                machine,
                dto.state,
                description=dto.description,
                actor_id=dto.actor_id,
            )
        except SaleError as exc:
            return _sale_error(exc)

        return Response({"machine": machine, **HistoryEntrySerializer(entry).data})

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get", "post"])
    def comentarios(self, request: Request, pk: str | None = None) -> Response:
        """GET/POST /api/v1/ventas/{pk}/comentarios/"""
        if request.method == "GET":
            try:
                comments = self._comments.list_comments(pk)
            except SaleError as exc:
                return _sale_error(exc)
            return Response(CommentSerializer(comments, many=True).data)

        try:
            data = _json_object(request)
            dto = CreateCommentDTO(
                title=data.get("title", ""),
                body=data.get("body", ""),
                author_id=data.get("author_id") or str(request.user.pk),
                kind=data.get("kind") or "GENERAL",
            )
        except (PydanticValidationError, ValueError) as exc:
            return _invalid_payload(exc)

        try:
            comment = self._comments.add_comment(pk, dto)
        except SaleError as exc:
            return _sale_error(exc)
        return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)
