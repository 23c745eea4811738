"""Sample data for local development and demos."""

import datetime as dt
import logging
from decimal import Decimal
from typing import Dict, Optional

from flowdesk.db.store import PersistenceStore
from flowdesk.models.entities import (
    ClientCreate,
    ContractCreate,
    ProjectCreate,
    TaskCreate,
    TimeEntryCreate,
)

logger = logging.getLogger(__name__)


def seed_sample_data(store: PersistenceStore, today: Optional[dt.date] = None) -> Dict[str, int]:
    """
    Insert two clients with one project each, plus tasks, time and a contract.

    Dates are relative to ``today`` so that the alert surface has something
    to report: one project is past its deadline, tasks fall due this week
    and the contract ends within the month.

    Args:
        store: Store with its schema created
        today: Reference date (defaults to date.today())

    Returns:
        Number of records created per entity
    """
    today = today or dt.date.today()

    joao = store.create(
        ClientCreate(
            name="João Silva",
            email="joao@empresa.com",
            phone="(11) 99999-9999",
            company="Empresa ABC",
            address="São Paulo, SP",
            notes="Cliente VIP",
            tags=["vip", "recorrente"],
        )
    )
    maria = store.create(
        ClientCreate(
            name="Maria Santos",
            email="maria@startup.com",
            phone="(11) 88888-8888",
            company="Startup XYZ",
            address="Rio de Janeiro, RJ",
            notes="Cliente novo",
            tags=["novo", "tecnologia"],
        )
    )

    website = store.create(
        ProjectCreate(
            name="Website Corporativo",
            description="Desenvolvimento de site institucional",
            client_id=joao.id,
            status="in_progress",
            start_date=today - dt.timedelta(days=60),
            deadline=today - dt.timedelta(days=5),
            progress=65,
            budget=Decimal("15000.00"),
        )
    )
    app = store.create(
        ProjectCreate(
            name="App Mobile",
            description="Aplicativo para iOS e Android",
            client_id=maria.id,
            status="planning",
            start_date=today - dt.timedelta(days=10),
            deadline=today + dt.timedelta(days=90),
            progress=10,
            budget=Decimal("25000.00"),
        )
    )

    tasks = [
        TaskCreate(
            title="Revisar layout da home",
            project_id=website.id,
            assignee="Ana",
            priority="high",
            due_date=today + dt.timedelta(days=1),
        ),
        TaskCreate(
            title="Publicar site",
            project_id=website.id,
            assignee="Ana",
            priority="medium",
            due_date=today - dt.timedelta(days=2),
        ),
        TaskCreate(
            title="Protótipo das telas",
            project_id=app.id,
            assignee="Bruno",
            priority="medium",
            due_date=today + dt.timedelta(days=5),
        ),
    ]
    for task in tasks:
        store.create(task)

    entries = [
        (website.id, "Ana", "Layout da home", "4.00", 3),
        (website.id, "Ana", "Integração do CMS", "3.50", 2),
        (website.id, "Carlos", "Reunião com cliente", "1.00", 2),
        (app.id, "Bruno", "Levantamento de requisitos", "6.00", 1),
    ]
    for project_id, user_name, description, hours, days_ago in entries:
        store.create(
            TimeEntryCreate(
                project_id=project_id,
                user_name=user_name,
                description=description,
                hours=hours,
                date=today - dt.timedelta(days=days_ago),
            )
        )

    store.create(
        ContractCreate(
            name="Contrato de manutenção",
            client_id=joao.id,
            project_id=website.id,
            status="active",
            value=Decimal("12000.00"),
            start_date=today - dt.timedelta(days=335),
            end_date=today + dt.timedelta(days=20),
        )
    )

    counts = {
        "clients": 2,
        "projects": 2,
        "tasks": len(tasks),
        "time_entries": len(entries),
        "contracts": 1,
    }
    logger.info(f"Seeded sample data: {counts}")
    return counts
