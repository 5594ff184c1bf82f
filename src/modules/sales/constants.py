"""Sale domain constants.

Closed state sets for the two state machines of a sale and the legal
edges between their states.  Every state has an explicit entry; terminal
states map to an empty set.
"""

from django.db import models


class StatusMachine(models.TextChoices):
    COMMERCIAL = "COMMERCIAL", "Comercial"
    LOGISTICS = "LOGISTICS", "Logística"


class CommercialStatus(models.TextChoices):
    INICIAL = "INICIAL", "Inicial"
    EN_PROCESO = "EN_PROCESO", "En proceso"
    PENDIENTE_DOCUMENTACION = "PENDIENTE_DOCUMENTACION", "Pendiente de documentación"
    APROBADO = "APROBADO", "Aprobado"
    ACTIVADO = "ACTIVADO", "Activado"
    RECHAZADO = "RECHAZADO", "Rechazado"
    CANCELADO = "CANCELADO", "Cancelado"


class LogisticsStatus(models.TextChoices):
    ASIGNADO = "ASIGNADO", "Asignado"
    EN_TRANSITO = "EN_TRANSITO", "En tránsito"
    INGRESADO_CENTRO_LOGISTICO = (
        "INGRESADO_CENTRO_LOGISTICO",
        "Ingresado centro logístico - ecommerce",
    )
    INGRESADO_AGENCIA = "INGRESADO_AGENCIA", "Ingresado en agencia"
    INGRESADO_PICK_UP_CENTER = "INGRESADO_PICK_UP_CENTER", "Ingresado pick up center UES"
    NO_ENTREGADO = "NO_ENTREGADO", "No entregado"
    RECLAMO_UES = "RECLAMO_UES", "Reclamo UES"
    ENTREGADO = "ENTREGADO", "Entregado"
    RENDIDO_AL_CLIENTE = "RENDIDO_AL_CLIENTE", "Rendido al cliente"
    DEVUELTO = "DEVUELTO", "Devuelto"
    DEVUELTO_AL_CLIENTE = "DEVUELTO_AL_CLIENTE", "Devuelto al cliente"


class ChipType(models.TextChoices):
    SIM = "SIM", "SIM física"
    ESIM = "ESIM", "eSIM"


class SaleKind(models.TextChoices):
    PORTABILIDAD = "PORTABILIDAD", "Portabilidad"
    LINEA_NUEVA = "LINEA_NUEVA", "Línea nueva"


COMMERCIAL_TRANSITIONS: dict[str, frozenset[str]] = {
    CommercialStatus.INICIAL: frozenset(
        {
            CommercialStatus.EN_PROCESO,
            CommercialStatus.PENDIENTE_DOCUMENTACION,
            CommercialStatus.RECHAZADO,
            CommercialStatus.CANCELADO,
        }
    ),
    CommercialStatus.EN_PROCESO: frozenset(
        {
            CommercialStatus.PENDIENTE_DOCUMENTACION,
            CommercialStatus.APROBADO,
            CommercialStatus.RECHAZADO,
            CommercialStatus.CANCELADO,
        }
    ),
    CommercialStatus.PENDIENTE_DOCUMENTACION: frozenset(
        {
            CommercialStatus.EN_PROCESO,
            CommercialStatus.RECHAZADO,
            CommercialStatus.CANCELADO,
        }
    ),
    CommercialStatus.APROBADO: frozenset(
        {CommercialStatus.ACTIVADO, CommercialStatus.CANCELADO}
    ),
    CommercialStatus.ACTIVADO: frozenset(),
    CommercialStatus.RECHAZADO: frozenset(),
    CommercialStatus.CANCELADO: frozenset(),
}

LOGISTICS_TRANSITIONS: dict[str, frozenset[str]] = {
    LogisticsStatus.ASIGNADO: frozenset(
        {LogisticsStatus.EN_TRANSITO, LogisticsStatus.DEVUELTO}
    ),
    LogisticsStatus.EN_TRANSITO: frozenset(
        {
            LogisticsStatus.INGRESADO_CENTRO_LOGISTICO,
            LogisticsStatus.INGRESADO_AGENCIA,
            LogisticsStatus.INGRESADO_PICK_UP_CENTER,
            LogisticsStatus.ENTREGADO,
            LogisticsStatus.NO_ENTREGADO,
            LogisticsStatus.RECLAMO_UES,
        }
    ),
    LogisticsStatus.INGRESADO_CENTRO_LOGISTICO: frozenset(
        {LogisticsStatus.EN_TRANSITO, LogisticsStatus.DEVUELTO}
    ),
    LogisticsStatus.INGRESADO_AGENCIA: frozenset(
        {
            LogisticsStatus.ENTREGADO,
            LogisticsStatus.RENDIDO_AL_CLIENTE,
            LogisticsStatus.DEVUELTO,
            LogisticsStatus.RECLAMO_UES,
        }
    ),
    LogisticsStatus.INGRESADO_PICK_UP_CENTER: frozenset(
        {
            LogisticsStatus.ENTREGADO,
            LogisticsStatus.RENDIDO_AL_CLIENTE,
            LogisticsStatus.DEVUELTO,
            LogisticsStatus.RECLAMO_UES,
        }
    ),
    LogisticsStatus.NO_ENTREGADO: frozenset(
        {
            LogisticsStatus.EN_TRANSITO,
            LogisticsStatus.DEVUELTO,
            LogisticsStatus.DEVUELTO_AL_CLIENTE,
            LogisticsStatus.RECLAMO_UES,
        }
    ),
    # Claims are resolved by resuming delivery or by returning the equipment.
    LogisticsStatus.RECLAMO_UES: frozenset(
        {
            LogisticsStatus.EN_TRANSITO,
            LogisticsStatus.ENTREGADO,
            LogisticsStatus.DEVUELTO,
            LogisticsStatus.DEVUELTO_AL_CLIENTE,
        }
    ),
    LogisticsStatus.ENTREGADO: frozenset(),
    LogisticsStatus.RENDIDO_AL_CLIENTE: frozenset(),
    LogisticsStatus.DEVUELTO: frozenset(),
    LogisticsStatus.DEVUELTO_AL_CLIENTE: frozenset(),
}

INITIAL_STATES: dict[str, str] = {
    StatusMachine.COMMERCIAL: CommercialStatus.INICIAL,
    StatusMachine.LOGISTICS: LogisticsStatus.ASIGNADO,
}

REFERENCE_CODE_PREFIX = "SAP"

# Topic used for every sale event written to the outbox.
OUTBOX_TOPIC = "sales"
