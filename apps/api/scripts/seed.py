"""
Seed Initial Data

Creates the administrator account plus the default request and document
types. Existing rows (matched by login or name) are left untouched, so the
script can be run repeatedly.

Admin credentials come from the environment:
    SEED_ADMIN_LOGIN, SEED_ADMIN_EMAIL, SEED_ADMIN_PASSWORD, SEED_ADMIN_NAME,
    SEED_ADMIN_CPF (optional)

Usage:
    cd apps/api
    python scripts/seed.py
"""

import asyncio
import logging
import os
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pydantic import EmailStr, TypeAdapter
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import async_session_maker, close_db
from app.core.logging_config import configure_logging
from app.core.security import hash_password
from app.modules.documents.models import DocumentType, DocumentUserType
from app.modules.requests.models import RequestType
from app.modules.shared.formatters import remove_cpf_mask
from app.modules.shared.validators import validate_cpf, validate_strong_password
from app.modules.users.models import UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger("seed")

DEFAULT_REQUEST_TYPES = [
    ("Declaração de Matrícula", "Comprovante de vínculo com a instituição", 3),
    ("Histórico Escolar", "Histórico com disciplinas cursadas e notas", 5),
    ("Trancamento de Matrícula", "Suspensão temporária do curso", 10),
    ("Revisão de Nota", "Pedido de revisão de avaliação", 7),
    ("Segunda Via de Diploma", "Emissão de nova via do diploma", 30),
]

DEFAULT_DOCUMENT_TYPES = [
    ("RG", "Documento de identidade", DocumentUserType.BOTH, True),
    ("CPF", "Cadastro de Pessoa Física", DocumentUserType.BOTH, True),
    ("Comprovante de Residência", "Emitido nos últimos 3 meses", DocumentUserType.BOTH, True),
    ("Foto 3x4", None, DocumentUserType.STUDENT, False),
    ("Certificado de Conclusão do Ensino Médio", None, DocumentUserType.STUDENT, True),
    ("Diploma de Graduação", None, DocumentUserType.TEACHER, True),
    ("Título de Pós-Graduação", None, DocumentUserType.TEACHER, False),
]


async def seed_admin(db: AsyncSession) -> None:
    login = os.environ.get("SEED_ADMIN_LOGIN", "admin")
    email = TypeAdapter(EmailStr).validate_python(
        os.environ.get("SEED_ADMIN_EMAIL", "admin@secretaria.edu.br")
    )
    password = os.environ.get("SEED_ADMIN_PASSWORD", "")
    name = os.environ.get("SEED_ADMIN_NAME", "Administrador")
    cpf = os.environ.get("SEED_ADMIN_CPF") or None

    if await UserRepository.login_exists(db, login):
        logger.info(f"Admin already exists: {login}")
        return

    if not validate_strong_password(password):
        raise SystemExit(
            "SEED_ADMIN_PASSWORD needs 8+ characters with upper and lower case letters and a digit"
        )
    if cpf is not None:
        if not validate_cpf(cpf):
            raise SystemExit(f"SEED_ADMIN_CPF is not a valid CPF: {cpf}")
        cpf = remove_cpf_mask(cpf)

    admin = await UserRepository.create(
        db,
        name=name,
        email=email,
        login=login,
        password_hash=hash_password(password),
        role=UserRole.ADMIN,
        cpf=cpf,
    )
    logger.info(f"Admin created: {admin.login} ({admin.id})")


async def seed_request_types(db: AsyncSession) -> None:
    existing = set((await db.execute(select(RequestType.name))).scalars())
    for name, description, deadline in DEFAULT_REQUEST_TYPES:
        if name in existing:
            continue
        db.add(RequestType(name=name, description=description, response_deadline_days=deadline))
        logger.info(f"Request type created: {name}")


async def seed_document_types(db: AsyncSession) -> None:
    existing = set((await db.execute(select(DocumentType.name))).scalars())
    for name, description, user_type, required in DEFAULT_DOCUMENT_TYPES:
        if name in existing:
            continue
        db.add(
            DocumentType(
                name=name,
                description=description,
                user_type=user_type,
                is_required=required,
            )
        )
        logger.info(f"Document type created: {name} ({user_type.value})")


async def seed() -> None:
    configure_logging(settings.effective_log_level)
    try:
        async with async_session_maker() as db:
            await seed_admin(db)
            await seed_request_types(db)
            await seed_document_types(db)
            await db.commit()
        logger.info("Seed complete")
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(seed())
