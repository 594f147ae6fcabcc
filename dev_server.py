#!/usr/bin/env python3
"""
Development server with auto-port detection (8000-8006)

--memory runs without a database: every request shares one in-memory store
seeded with a guardian, a professional and a pet.
"""
import argparse
import socket

import structlog
import uvicorn

from api.deps import get_repository
from domain.models import Pet, Profile
from infrastructure.database import InMemoryRepository, InMemoryStore
from infrastructure.structured_logging import configure_logging
from main import create_app

logger = structlog.get_logger(__name__)


def is_port_available(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind(("0.0.0.0", port))
            return True
        except OSError:
            return False


def find_available_port(start: int = 8000, end: int = 8006) -> int:
    for port in range(start, end + 1):
        if is_port_available(port):
            return port
    raise RuntimeError(f"No available ports in range {start}-{end}")


def seed_demo_store() -> InMemoryStore:
    store = InMemoryStore()
    guardian = Profile(full_name="Ana Souza", account_type="guardian")
    vet = Profile(
        full_name="Dr. Carlos Lima",
        account_type="professional",
        professional_crmv="12345",
        professional_crmv_state="SP",
        professional_service_type="veterinarian",
    )
    pet = Pet(guardian_id=guardian.id, name="Thor", species="dog")
    store.seed(guardian, vet, pet)

    logger.info(
        "demo_data_seeded",
        guardian_id=str(guardian.id),
        professional_id=str(vet.id),
        pet_id=str(pet.id),
    )
    return store


def build_memory_app():
    store = seed_demo_store()
    app = create_app()
    app.dependency_overrides[get_repository] = lambda: InMemoryRepository(store)
    return app


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the health access API locally")
    parser.add_argument("--memory", action="store_true", help="use the in-memory store instead of DATABASE_URL")
    args = parser.parse_args()

    configure_logging("INFO")
    port = find_available_port()
    logger.info("dev_server_starting", port=port, memory=args.memory)

    if args.memory:
        uvicorn.run(build_memory_app(), host="0.0.0.0", port=port, log_level="info")
    else:
        uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True, log_level="info")
