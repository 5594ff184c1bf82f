"""Sale service layer (Use Cases).

Orchestrates the sale lifecycle: atomic creation of a sale with its
dependent records, and the two historized state machines.  All write
operations are atomic: the service defines the unit-of-work boundary.

Business rules enforced:
- Validation and business-rule errors are raised before the first write.
- Plan and promotion must belong to the origin company of the variant.
- Price is computed once and pinned onto the sale.
- SIM sales ship; eSIM sales neither ship nor carry an STL code.
- Transitions follow ``TransitionTable``; the same state twice is rejected.
- Transitions of one ``(sale, machine)`` are serialized by a row lock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

import structlog
from django.conf import settings
from django.db import DatabaseError, IntegrityError, OperationalError, transaction
from django.utils import timezone

from modules.sales.audit import AuditTrailRecorder
from modules.sales.constants import ChipType, StatusMachine
from modules.sales.dtos import PortabilityDTO
from modules.sales.events import (
    CommercialStatusChanged,
    LogisticsStatusChanged,
    SaleCreated,
)
from modules.sales.exceptions import (
    ClientNotFound,
    ConcurrentTransitionConflict,
    DuplicateReferenceCodeError,
    IncompatibleOfferError,
    InvalidTransition,
    OriginCompanyNotFound,
    PersistenceFailure,
    PlanNotFound,
    PromotionNotFound,
    SaleNotFound,
    SaleValidationError,
)
from modules.sales.models import Sale
from modules.sales.pricing import compute_price
from modules.sales.transitions import TransitionTable, transition_table

if TYPE_CHECKING:
    from modules.catalog.models import OriginCompany, Plan, Promotion
    from modules.catalog.repositories.interfaces import ICatalogRepository
    from modules.clients.models import Client
    from modules.clients.repositories.interfaces import IClientRepository
    from modules.sales.dtos import (
        CreateCommentDTO,
        CreateSaleDTO,
        NewLineDTO,
    )
    from modules.sales.models import Comment, HistoryEntry
    from modules.sales.repositories.interfaces import (
        ISaleRepository,
        IStatusHistoryRepository,
    )

logger = structlog.get_logger(__name__)

STATUS_EVENTS = {
    StatusMachine.COMMERCIAL: CommercialStatusChanged,
    StatusMachine.LOGISTICS: LogisticsStatusChanged,
}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SaleCreationResult:
    sale: Sale
    created: bool


@dataclass(frozen=True)
class SaleSnapshot:
    """A sale plus its current statuses, computed at read time."""

    sale: Sale
    commercial_status: Optional[str]
    logistics_status: Optional[str]


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


class StatusTransitionEngine:
    """Validates and applies transitions of the commercial/logistics machines.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        sale_repository: ISaleRepository,
        history_repository: IStatusHistoryRepository,
        table: TransitionTable = transition_table,
        recorder: Optional[AuditTrailRecorder] = None,
    ) -> None:
        self._sale_repo = sale_repository
        self._history_repo = history_repository
        self._table = table
        self._recorder = recorder or AuditTrailRecorder(history_repository)

    def initial_state(self, machine: str) -> str:
        return self._table.initial_state(machine)

    @transaction.atomic
    def transition(
        self,
        sale_id: Union[int, str],
        machine: str,
        requested_state: str,
        description: str = "",
        actor_id: str = "",
        *,
        seed: bool = False,
    ) -> HistoryEntry:
        """Move ``(sale_id, machine)`` to ``requested_state``.

        ``seed=True`` is reserved to sale creation: it writes the first entry
        of an empty stream and only accepts the machine's initial state.

        Steps:
        1. Validate input and load the sale.
        2. Lock the latest entry of the stream (``SELECT FOR UPDATE``), then
           re-read the head so a transition committed while waiting is seen.
        3. Check the edge against ``TransitionTable``.
        4. Append via ``AuditTrailRecorder`` and queue the domain event.

        Raises:
            SaleValidationError: unknown machine/state, missing actor, or a
                logistics request on a sale without shipment.
            SaleNotFound: sale does not exist.
            InvalidTransition: illegal edge, same state, or terminal source.
            ConcurrentTransitionConflict: lock timeout or lost ``seq`` race.
            PersistenceFailure: any other storage fault.
        """
        log = logger.bind(
            sale_id=str(sale_id),
            machine=machine,
            requested_state=requested_state,
        )

        try:
            known_states = self._table.states(machine)
        except ValueError as exc:
            raise SaleValidationError(str(exc)) from exc
        if requested_state not in known_states:
            raise SaleValidationError(f"Unknown {machine} state {requested_state!r}.")
        if not actor_id:
            raise SaleValidationError("actor_id is required.")

        try:
            sale = self._sale_repo.get_by_id(str(sale_id))
        except DatabaseError as exc:
            log.error("sale.transition_read_failed", error=str(exc))
            raise PersistenceFailure(f"Could not read sale {sale_id}.") from exc
        if not sale:
            raise SaleNotFound(f"Sale {sale_id} not found.")
        if machine == StatusMachine.LOGISTICS and not sale.has_shipment:
            raise SaleValidationError(
                f"Sale {sale.id} has no shipment; logistics status does not apply."
            )

        try:
            locked = self._history_repo.lock_head(sale.id, machine)
            head = self._history_repo.get_head(sale.id, machine)
        except OperationalError as exc:
            log.warning("sale.transition_lock_timeout")
            raise ConcurrentTransitionConflict(
                f"Timed out waiting for another {machine} transition of sale {sale.id}."
            ) from exc
        except DatabaseError as exc:
            log.error("sale.transition_read_failed", error=str(exc))
            raise PersistenceFailure(f"Could not read history of sale {sale.id}.") from exc

        if locked is not None and head is not None and head.seq != locked.seq:
            log.info("sale.transition_head_moved", locked_seq=locked.seq, head_seq=head.seq)

        current_state = head.state if head else None
        self._check_edge(machine, current_state, requested_state, seed, log)

        entry = self._recorder.append(
            sale_id=sale.id,
            machine=machine,
            new_state=requested_state,
            description=description,
            actor_id=actor_id,
        )

        if not seed:
            event_class = STATUS_EVENTS[machine]
            sale.add_domain_event(
                event_class(
                    aggregate_id=sale.id,
                    machine=machine,
                    from_state=current_state,
                    to_state=requested_state,
                    seq=entry.seq,
                    actor_id=actor_id,
                )
            )
            try:
                self._sale_repo.save(sale)
            except DatabaseError as exc:
                log.error("sale.transition_event_failed", seq=entry.seq, error=str(exc))
                raise PersistenceFailure(
                    f"Could not record the status event of sale {sale.id}; nothing was saved."
                ) from exc

        log.info(
            "sale.transitioned",
            from_state=current_state,
            seq=entry.seq,
            seed=seed,
        )
        return entry

    def _check_edge(
        self,
        machine: str,
        current_state: Optional[str],
        requested_state: str,
        seed: bool,
        log: Any,
    ) -> None:
        if seed:
            initial = self._table.initial_state(machine)
            if current_state is not None:
                reason: Optional[str] = f"{machine} status already initialized."
            elif requested_state != initial:
                reason = f"{machine} status must start at {initial}."
            else:
                return
        elif current_state is None:
            reason = f"{machine} status not initialized."
        elif requested_state == current_state:
            reason = f"{machine} status is already {current_state}."
        elif self._table.is_terminal(machine, current_state):
            reason = f"{machine} status {current_state} is terminal."
        elif self._table.is_allowed(machine, current_state, requested_state):
            return
        else:
            reason = None

        log.warning("sale.transition_rejected", from_state=current_state)
        raise InvalidTransition(
            machine=machine,
            from_state=current_state,
            to_state=requested_state,
            message=reason,
        )


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class SaleCreationCoordinator:
    """Creates a sale and everything that belongs to it, all or nothing."""

    def __init__(
        self,
        sale_repository: ISaleRepository,
        client_repository: IClientRepository,
        catalog_repository: ICatalogRepository,
        transition_engine: StatusTransitionEngine,
    ) -> None:
        self._sale_repo = sale_repository
        self._client_repo = client_repository
        self._catalog_repo = catalog_repository
        self._engine = transition_engine

    @transaction.atomic
    def create_sale(self, dto: CreateSaleDTO) -> SaleCreationResult:
        """Create a sale with its variant, shipment and initial statuses.

        Steps:
        0. Idempotency check.
        1. Chip/shipment consistency.
        2. Resolve origin company, plan and promotion; check compatibility.
        3. Pin the price via ``compute_price``.
        4. Resolve the client (inline clients are created here, first write).
        5. Insert the sale with a unique reference code (bounded retries).
        6. Insert the variant and, for SIM, the shipment.
        7. Seed commercial ``INICIAL`` and, with shipment, logistics ``ASIGNADO``.
        8. Queue ``SaleCreated`` to the outbox.

        Raises:
            SaleValidationError, ClientNotFound, OriginCompanyNotFound,
            PlanNotFound, PromotionNotFound, IncompatibleOfferError,
            InvalidPricingInput: before any write.
            DuplicateReferenceCodeError, PersistenceFailure: during writes;
            the whole creation is rolled back.
        """
        log = logger.bind(seller_id=dto.seller_id, plan_id=str(dto.plan_id))
        log.info("sale.creation_started")

        # 0. Idempotency check
        if dto.idempotency_key:
            existing = self._sale_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                log.info("sale.idempotency_hit", sale_id=existing.id)
                return SaleCreationResult(sale=existing, created=False)

        # 1-3. Validation (no writes)
        self._check_chip_rules(dto)
        company = self._resolve_company(dto.variant)
        plan, promotion = self._resolve_offer(dto, company)
        discount = promotion.discount_percent if promotion else 0
        final_price = compute_price(plan.price, discount)
        client = self._find_client(dto)

        # 4-7. Writes
        try:
            with transaction.atomic():
                if client is None:
                    client, client_created = self._client_repo.get_or_create(dto.client)
                    log.info(
                        "sale.client_resolved", client_id=str(client.id), created=client_created
                    )

                sale, created = self._insert_sale(
                    {
                        "client": client,
                        "plan": plan,
                        "promotion": promotion,
                        "origin_company": company,
                        "seller_id": dto.seller_id,
                        "chip_type": dto.chip_type.value,
                        "sale_kind": dto.variant.kind,
                        "base_price": plan.price,
                        "discount_percent": discount,
                        "final_price": final_price,
                        "sds": dto.sds,
                        "stl": dto.stl,
                        "idempotency_key": dto.idempotency_key,
                    },
                    supplied_code=dto.shipment.reference_code if dto.shipment else None,
                    log=log,
                )
                if not created:
                    # Another request with the same key won the insert.
                    transaction.set_rollback(True)
            if not created:
                return SaleCreationResult(sale=sale, created=False)

            self._insert_variant(sale, dto.variant, company)
            if dto.shipment:
                self._sale_repo.add_shipment(
                    sale,
                    {
                        **dto.shipment.model_dump(exclude={"reference_code"}),
                        "deadline": timezone.now()
                        + timedelta(days=settings.SHIPMENT_DEADLINE_DAYS),
                    },
                )

            self._engine.transition(
                sale.id,
                StatusMachine.COMMERCIAL,
                self._engine.initial_state(StatusMachine.COMMERCIAL),
                description="Venta creada",
                actor_id=dto.seller_id,
                seed=True,
            )
            if dto.shipment:
                self._engine.transition(
                    sale.id,
                    StatusMachine.LOGISTICS,
                    self._engine.initial_state(StatusMachine.LOGISTICS),
                    description="Envío asignado",
                    actor_id=dto.seller_id,
                    seed=True,
                )

            sale.add_domain_event(
                SaleCreated(
                    aggregate_id=sale.id,
                    reference_code=sale.reference_code,
                    sale_kind=sale.sale_kind,
                    chip_type=sale.chip_type,
                    final_price=str(sale.final_price),
                    seller_id=sale.seller_id,
                )
            )
            self._sale_repo.save(sale)
        except DatabaseError as exc:
            log.error("sale.creation_failed", error=str(exc))
            raise PersistenceFailure("The sale could not be stored; nothing was saved.") from exc

        log.info(
            "sale.created",
            sale_id=sale.id,
            reference_code=sale.reference_code,
            final_price=str(final_price),
        )
        return SaleCreationResult(sale=sale, created=True)

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_chip_rules(dto: CreateSaleDTO) -> None:
        if dto.chip_type == ChipType.SIM and dto.shipment is None:
            raise SaleValidationError("A SIM sale requires shipment data.")
        if dto.chip_type == ChipType.ESIM:
            if dto.shipment is not None:
                raise SaleValidationError("An eSIM sale cannot carry shipment data.")
            if dto.stl:
                raise SaleValidationError("An eSIM sale cannot carry an STL code.")

    def _resolve_company(self, variant: Union[PortabilityDTO, NewLineDTO]) -> OriginCompany:
        """Company whose offer is sold: the donor, or the new line's carrier."""
        if isinstance(variant, PortabilityDTO):
            company_id = variant.donor_company_id
        else:
            company_id = variant.company_id or settings.NEW_LINE_COMPANY_ID
        if not company_id:
            raise SaleValidationError(
                "A new line needs 'company_id' when no default company is configured."
            )

        company = self._catalog_repo.get_company(str(company_id))
        if not company:
            raise OriginCompanyNotFound(f"Origin company {company_id} not found.")
        return company

    def _resolve_offer(
        self, dto: CreateSaleDTO, company: OriginCompany
    ) -> Tuple[Plan, Optional[Promotion]]:
        plan = self._catalog_repo.get_plan(str(dto.plan_id))
        if not plan:
            raise PlanNotFound(f"Plan {dto.plan_id} not found.")
        if plan.origin_company_id != company.id:
            raise IncompatibleOfferError(
                f"Plan {plan.name} is not offered by {company.name}."
            )
        if not plan.active:
            raise IncompatibleOfferError(f"Plan {plan.name} is inactive.")

        promotion = None
        if dto.promotion_id:
            promotion = self._catalog_repo.get_promotion(str(dto.promotion_id))
            if not promotion:
                raise PromotionNotFound(f"Promotion {dto.promotion_id} not found.")
            if promotion.origin_company_id != company.id:
                raise IncompatibleOfferError(
                    f"Promotion {promotion.name} is not offered by {company.name}."
                )
            if promotion.is_expired():
                raise IncompatibleOfferError(f"Promotion {promotion.name} has expired.")
        return plan, promotion

    def _find_client(self, dto: CreateSaleDTO) -> Optional[Client]:
        if dto.client_id is None:
            return None
        client = self._client_repo.get_by_id(str(dto.client_id))
        if not client:
            raise ClientNotFound(f"Client {dto.client_id} not found.")
        return client

    # ------------------------------------------------------------------
    # Write helpers
    # ------------------------------------------------------------------

    def _insert_sale(
        self,
        data: Dict[str, Any],
        supplied_code: Optional[str],
        log: Any,
    ) -> Tuple[Sale, bool]:
        """Insert the sale row, allocating a unique reference code.

        Returns ``(sale, False)`` when a concurrent request with the same
        idempotency key won the insert.
        """
        if supplied_code and self._sale_repo.reference_code_exists(supplied_code):
            raise DuplicateReferenceCodeError(
                f"Reference code {supplied_code} is already assigned."
            )

        attempts = 1 if supplied_code else settings.REFERENCE_CODE_MAX_RETRIES
        for attempt in range(1, attempts + 1):
            code = supplied_code or Sale.generate_reference_code()
            try:
                return self._sale_repo.create({**data, "reference_code": code}), True
            except IntegrityError as exc:
                key = data.get("idempotency_key")
                if key:
                    winner = self._sale_repo.get_by_idempotency_key(key)
                    if winner:
                        log.info("sale.idempotency_race_resolved", sale_id=winner.id)
                        return winner, False
                if not self._sale_repo.reference_code_exists(code):
                    raise PersistenceFailure("The sale row could not be inserted.") from exc
                log.warning(
                    "sale.reference_code_collision",
                    attempt=attempt,
                    supplied=bool(supplied_code),
                )

        if supplied_code:
            raise DuplicateReferenceCodeError(
                f"Reference code {supplied_code} is already assigned."
            )
        raise DuplicateReferenceCodeError(
            f"No free reference code after {attempts} attempts."
        )

    def _insert_variant(
        self,
        sale: Sale,
        variant: Union[PortabilityDTO, NewLineDTO],
        company: OriginCompany,
    ) -> None:
        if isinstance(variant, PortabilityDTO):
            self._sale_repo.add_portability(
                sale,
                {
                    "spn": variant.spn,
                    "donor_company": company,
                    "origin_market": variant.origin_market,
                    "number_to_port": variant.number_to_port,
                    "pin": variant.pin,
                    "pin_expires_at": variant.pin_expires_at,
                    "porting_date": variant.porting_date,
                },
            )
        else:
            self._sale_repo.add_new_line(
                sale,
                {"assigned_number": variant.assigned_number, "company": company},
            )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class SaleQueryService:
    def __init__(
        self,
        sale_repository: ISaleRepository,
        history_repository: IStatusHistoryRepository,
    ) -> None:
        self._sale_repo = sale_repository
        self._recorder = AuditTrailRecorder(history_repository)

    def _get(self, sale_id: Union[int, str]) -> Sale:
        sale = self._sale_repo.get_by_id(str(sale_id))
        if not sale:
            raise SaleNotFound(f"Sale {sale_id} not found.")
        return sale

    def get_sale(self, sale_id: Union[int, str]) -> SaleSnapshot:
        """Retrieve a sale with its current statuses read from history now."""
        sale = self._get(sale_id)
        return SaleSnapshot(
            sale=sale,
            commercial_status=self._recorder.current_state(sale.id, StatusMachine.COMMERCIAL),
            logistics_status=self._recorder.current_state(sale.id, StatusMachine.LOGISTICS),
        )

    def get_history(self, sale_id: Union[int, str]) -> Dict[str, List[HistoryEntry]]:
        """Both status streams, each ordered by ``seq`` ascending."""
        sale = self._get(sale_id)
        return {
            "commercial": self._recorder.history(sale.id, StatusMachine.COMMERCIAL),
            "logistics": self._recorder.history(sale.id, StatusMachine.LOGISTICS),
        }


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


class SaleCommentService:
    def __init__(self, sale_repository: ISaleRepository) -> None:
        self._sale_repo = sale_repository

    @transaction.atomic
    def add_comment(self, sale_id: Union[int, str], dto: CreateCommentDTO) -> Comment:
        sale = self._sale_repo.get_by_id(str(sale_id))
        if not sale:
            raise SaleNotFound(f"Sale {sale_id} not found.")
        return self._sale_repo.add_comment(sale.id, dto.model_dump())

    def list_comments(self, sale_id: Union[int, str]) -> List[Comment]:
        sale = self._sale_repo.get_by_id(str(sale_id))
        if not sale:
            raise SaleNotFound(f"Sale {sale_id} not found.")
        return self._sale_repo.list_comments(sale.id)

