from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from dcm.config import AppSettings
from dcm.repositories.contracts import DairyBackend
from dcm.repositories.http_backend import HttpBackend
from dcm.repositories.sqlite_repo import SqliteRepository
from dcm.services.cash_service import CashService
from dcm.services.collection_service import CollectionService
from dcm.services.farmer_service import FarmerService
from dcm.services.inventory_service import InventoryService
from dcm.services.rate_service import RateService
from dcm.services.reporting_service import ReportingService
from dcm.services.sales_service import SalesService


@dataclass(frozen=True)
class AppContainer:
    backend: DairyBackend
    farmers: FarmerService
    collections: CollectionService
    cash: CashService
    inventory: InventoryService
    sales: SalesService
    rates: RateService
    reporting: ReportingService


def build_backend(db_path: Path | str, settings: AppSettings) -> DairyBackend:
    if settings.backend_url:
        return HttpBackend(settings.backend_url, page_size=settings.page_size, timeout=settings.http_timeout)
    repo = SqliteRepository(db_path, page_size=settings.page_size)
    repo.init_db()
    return repo


def build_container(db_path: Path | str, settings: AppSettings | None = None) -> AppContainer:
    settings = settings or AppSettings()
    backend = build_backend(db_path, settings)

    return AppContainer(
        backend=backend,
        farmers=FarmerService(backend),
        collections=CollectionService(backend, max_pages=settings.max_pages),
        cash=CashService(backend, max_pages=settings.max_pages),
        inventory=InventoryService(backend),
        sales=SalesService(backend),
        rates=RateService(backend),
        reporting=ReportingService(backend, max_pages=settings.max_pages),
    )
