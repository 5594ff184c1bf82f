from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.catalog.models import OriginCompany, Plan, Promotion
from modules.catalog.repositories.django_repository import CatalogDjangoRepository
from modules.clients.models import Client, DocumentType
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.sales.constants import ChipType, SaleKind
from modules.sales.dtos import CreateSaleDTO
from modules.sales.exceptions import SaleError
from modules.sales.repositories.django_repository import (
    SaleDjangoRepository,
    StatusHistoryDjangoRepository,
)
from modules.sales.services import SaleCreationCoordinator, StatusTransitionEngine


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        companies = self._seed_companies()
        plans, promotions = self._seed_offers(companies)
        clients = self._seed_clients()
        sales_created = self._seed_sales(clients, plans, promotions)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"companies={len(companies)}, "
                f"plans={len(plans)}, "
                f"promotions={len(promotions)}, "
                f"clients={len(clients)}, "
                f"sales={sales_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="vendedor").exists():
            User.objects.create_user("vendedor", password="vendedor123")
            created += 1
        if not User.objects.filter(username="backoffice").exists():
            User.objects.create_user("backoffice", password="backoffice123", is_staff=True)
            created += 1
        return created

    def _seed_companies(self) -> list[OriginCompany]:
        self.stdout.write("Creating origin companies...")
        companies = [
            OriginCompany.objects.get_or_create(name=name, defaults={"country": country})[0]
            for name, country in [
                ("MOVISTAR", "AR"),
                ("CLARO", "AR"),
                ("PERSONAL", "AR"),
            ]
        ]
        self.stdout.write(self.style.SUCCESS("Creating origin companies... Done!"))
        return companies

    def _seed_offers(
        self, companies: list[OriginCompany]
    ) -> tuple[list[Plan], list[Promotion]]:
        self.stdout.write("Creating plans and promotions...")
        plans: list[Plan] = []
        promotions: list[Promotion] = []
        tiers = [
            ("PLAN 5GB", Decimal("600.00"), 5),
            ("PLAN 15GB", Decimal("900.00"), 15),
            ("PLAN 40GB", Decimal("1500.00"), 40),
        ]
        for company in companies:
            for name, price, gigabytes in tiers:
                plan, _ = Plan.objects.get_or_create(
                    origin_company=company,
                    name=name,
                    defaults={"price": price, "gigabytes": gigabytes},
                )
                plans.append(plan)
            for name, discount in [("BIENVENIDA", 20), ("PORTATE", 35)]:
                promotion, _ = Promotion.objects.get_or_create(
                    origin_company=company,
                    name=name,
                    defaults={"discount_percent": discount},
                )
                promotions.append(promotion)
        self.stdout.write(self.style.SUCCESS("Creating plans and promotions... Done!"))
        return plans, promotions

    def _seed_clients(self) -> list[Client]:
        self.stdout.write("Creating clients...")
        clients: list[Client] = []
        seed_clients = [
            ("Ana", "Gómez", DocumentType.DNI, "30111222", "ana@example.com"),
            ("Bruno", "Pérez", DocumentType.DNI, "28999888", "bruno@example.com"),
            ("Carla", "Díaz", DocumentType.CUIT, "20301112220", "carla@example.com"),
            ("Diego", "Ruiz", DocumentType.CI, "4567890", "diego@example.com"),
            ("Elena", "Sosa", DocumentType.PASAPORTE, "AAB123456", "elena@example.com"),
        ]
        for first_name, last_name, doc_type, document, email in seed_clients:
            client, _ = Client.objects.get_or_create(
                document_type=doc_type,
                document=document,
                defaults={
                    "first_name": first_name,
                    "last_name": last_name,
                    "email": email,
                },
            )
            clients.append(client)
        self.stdout.write(self.style.SUCCESS("Creating clients... Done!"))
        return clients

    def _seed_sales(
        self,
        clients: list[Client],
        plans: list[Plan],
        promotions: list[Promotion],
    ) -> int:
        self.stdout.write("Creating sales...")
        sale_repository = SaleDjangoRepository()
        coordinator = SaleCreationCoordinator(
            sale_repository=sale_repository,
            client_repository=ClientDjangoRepository(),
            catalog_repository=CatalogDjangoRepository(),
            transition_engine=StatusTransitionEngine(
                sale_repository=sale_repository,
                history_repository=StatusHistoryDjangoRepository(),
            ),
        )

        created = 0
        for i in range(10):
            plan = random.choice(plans)
            offers = [p for p in promotions if p.origin_company_id == plan.origin_company_id]
            promotion = random.choice(offers + [None])
            chip_type = random.choice([ChipType.SIM, ChipType.ESIM])
            payload = {
                "client_id": random.choice(clients).id,
                "plan_id": plan.id,
                "promotion_id": promotion.id if promotion else None,
                "chip_type": chip_type,
                "variant": {
                    "kind": SaleKind.PORTABILIDAD,
                    "spn": f"SPN{i:04d}",
                    "donor_company_id": plan.origin_company_id,
                    "origin_market": "PREPAGO",
                    "number_to_port": f"11{random.randint(10_000_000, 99_999_999)}",
                },
                "seller_id": "vendedor",
                "idempotency_key": f"seed-sale-{i + 1}",
            }
            if chip_type == ChipType.SIM:
                payload["shipment"] = {
                    "recipient": "Destinatario Seed",
                    "contact_phone": "1140000000",
                    "street_address": "Av. Corrientes",
                    "house_number": str(1000 + i),
                    "locality": "CABA",
                    "department": "CABA",
                    "postal_code": "1043",
                }

            try:
                result = coordinator.create_sale(CreateSaleDTO.model_validate(payload))
            except SaleError as exc:
                self.stdout.write(self.style.WARNING(f"Skipping sale {i + 1}: {exc}"))
                continue
            created += int(result.created)

        self.stdout.write(self.style.SUCCESS("Creating sales... Done!"))
        return created
