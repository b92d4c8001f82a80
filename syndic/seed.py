"""Demo accounts for development databases."""
from typing import Any, Dict, List

import structlog

from .core.passwords import PasswordHasher
from .models.enums import Role, UserStatus
from .services.credential_store import CredentialStore

logger = structlog.get_logger(__name__)

DEMO_PASSWORD = "password"

DEMO_USERS: List[Dict[str, Any]] = [
    {
        "email": "admin@syndic.ma",
        "name": "أحمد محمد العلوي",
        "phone": "+212 6 12 34 56 78",
        "role": Role.ADMIN,
        "status": UserStatus.ACTIVE,
        "avatar": "https://images.pexels.com/photos/2182970/pexels-photo-2182970.jpeg?auto=compress&cs=tinysrgb&w=100&h=100&dpr=2",
    },
    {
        "email": "fatima.zahra@email.com",
        "name": "فاطمة الزهراء",
        "phone": "+212 6 11 22 33 44",
        "role": Role.OWNER,
        "status": UserStatus.ACTIVE,
        "avatar": "https://images.pexels.com/photos/3763188/pexels-photo-3763188.jpeg?auto=compress&cs=tinysrgb&w=100&h=100&dpr=2",
    },
    {
        "email": "youssef.benali@email.com",
        "name": "يوسف بنعلي",
        "phone": "+212 6 55 66 77 88",
        "role": Role.OWNER,
        "status": UserStatus.ACTIVE,
    },
    {
        "email": "mohammed.idriss@email.com",
        "name": "محمد الإدريسي",
        "phone": "+212 6 87 65 43 21",
        "role": Role.TENANT,
        "status": UserStatus.ACTIVE,
    },
    {
        "email": "khadija.hasni@email.com",
        "name": "خديجة الحسني",
        "phone": "+212 6 99 88 77 66",
        "role": Role.ACCOUNTANT,
        "status": UserStatus.ACTIVE,
    },
    {
        "email": "omar.tazi@email.com",
        "name": "عمر التازي",
        "phone": "+212 6 44 33 22 11",
        "role": Role.SERVICE_PROVIDER,
        "status": UserStatus.ACTIVE,
    },
    {
        "email": "salma.bennani@email.com",
        "name": "سلمى بناني",
        "phone": "+212 6 77 88 99 00",
        "role": Role.OWNER,
        "status": UserStatus.PENDING,
    },
]


async def seed_users(store: CredentialStore, hasher: PasswordHasher = None) -> int:
    """Insert the demo accounts that are not present yet.

    Returns the number of accounts created.
    """
    hasher = hasher or PasswordHasher()
    password_hash = await hasher.hash_async(DEMO_PASSWORD)
    created = 0
    for fields in DEMO_USERS:
        if await store.find_by_email(fields["email"]) is not None:
            continue
        await store.create_user({**fields, "password_hash": password_hash})
        created += 1

    logger.info("Demo users seeded", created=created, total=len(DEMO_USERS))
    return created
