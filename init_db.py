"""Create the billing tables, optionally seeding a demo contract.

Usage: ``python init_db.py [--seed]``
"""

import argparse

import structlog

from app.backend.src.core.logging import configure_logging
from app.backend.src.db import get_engine, session_scope
from app.backend.src.db.base import Base
from app.backend.src.models import Customer, Vendor
from app.backend.src.schemas.contract import ContractCreate
from app.backend.src.services.contracts import store_contract

LOGGER = structlog.get_logger(__name__)

DEMO_CONTRACT = {
    "customer": {
        "dbxCustomerId": "DEMO-001",
        "clientName": "Harbor View Condominiums",
        "email": "board@harborview.example.com",
        "phone": "555-0100",
        "address": {
            "streetAddress": "100 Harbor View Dr",
            "city": "San Diego",
            "state": "CA",
            "zip": "92101",
        },
    },
    "order": {
        "orderNo": "SO-1001",
        "orderGrandTotal": 25000,
        "salesRep": "J. Alvarez",
        "stage": "active",
    },
    "items": [
        {"type": "maincategory", "productService": "Exterior"},
        {
            "type": "item",
            "productService": "Stucco repair",
            "qty": 10,
            "amount": 15000,
            "progressOverallPct": 40,
            "previouslyInvoicedPct": 0,
        },
        {
            "type": "item",
            "productService": "Paint",
            "qty": 1,
            "amount": 10000,
            "progressOverallPct": 0,
            "previouslyInvoicedPct": 0,
        },
    ],
}


def init_db(seed: bool = False) -> None:
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    LOGGER.info("tables_created", url=str(engine.url))
    if not seed:
        return

    with session_scope() as session:
        if session.get(Customer, DEMO_CONTRACT["customer"]["dbxCustomerId"]) is not None:
            LOGGER.info("seed_skipped", reason="demo customer exists")
            return
        session.add(Vendor(name="Coastal Painting Co.", category="Painting"))
        store_contract(session, ContractCreate.model_validate(DEMO_CONTRACT))
    LOGGER.info("seed_loaded")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", action="store_true", help="load a demo contract")
    args = parser.parse_args()
    configure_logging()
    init_db(seed=args.seed)
