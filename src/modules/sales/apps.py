from django.apps import AppConfig


class SalesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.sales"
    label = "sales"

    def ready(self) -> None:
        from modules.sales.events import (
            CommercialStatusChanged,
            LogisticsStatusChanged,
            SaleCreated,
        )
        from modules.sales.handlers import (
            commercial_status_changed_handler,
            logistics_status_changed_handler,
            sale_created_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(SaleCreated, sale_created_handler)
        event_bus.subscribe(CommercialStatusChanged, commercial_status_changed_handler)
        event_bus.subscribe(LogisticsStatusChanged, logistics_status_changed_handler)
