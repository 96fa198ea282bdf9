"""Test configuration and fixtures for the library circulation engine.

Every test runs against a frozen, manually advanced clock so due dates,
lateness and expiry windows are deterministic:
1. Isolated configuration - the settings singleton is reset around each test
2. One user per role, plus a coordinating faculty member
3. One resource per media type
4. A service with all of the above registered
"""

from collections.abc import Generator
from datetime import datetime, timedelta

import pytest

from library_circulation.config import CirculationSettings, reset_config
from library_circulation.models import AudioCopy, DigitalCopy, PhysicalCopy, User
from library_circulation.observability import ObservabilityConfig, initialize_observability
from library_circulation.service import CirculationService

START = datetime(2024, 3, 1, 10, 0)


class FrozenClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# === Session Fixtures ===


@pytest.fixture(scope="session", autouse=True)
def observability():
    """Configure Logfire locally so spans and metrics never leave the process."""
    initialize_observability(
        ObservabilityConfig(enabled=True, send_to_logfire=False, console_output=False)
    )


# === Configuration Fixtures ===


@pytest.fixture
def settings() -> Generator[CirculationSettings, None, None]:
    """Provide default settings isolated from the environment and the singleton."""
    reset_config()
    yield CirculationSettings(_env_file=None)
    reset_config()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


# === Entity Fixtures ===


@pytest.fixture
def student() -> User:
    return User(id="user_student01", name="Ana Torres", email="ana.torres@example.edu")


@pytest.fixture
def second_student() -> User:
    return User(id="user_student02", name="Luis Quispe", email="luis.quispe@example.edu")


@pytest.fixture
def faculty() -> User:
    return User(
        id="user_faculty01",
        name="Carmen Rojas",
        email="carmen.rojas@example.edu",
        role="faculty",
    )


@pytest.fixture
def coordinator() -> User:
    return User(
        id="user_coord01",
        name="Jorge Salas",
        email="jorge.salas@example.edu",
        role="faculty",
        coordinator=True,
    )


@pytest.fixture
def librarian() -> User:
    return User(
        id="user_librarian01",
        name="Rosa Medina",
        email="rosa.medina@example.edu",
        role="librarian",
    )


@pytest.fixture
def physical_copy() -> PhysicalCopy:
    return PhysicalCopy(
        id="res_quijote01",
        title="Don Quijote de la Mancha",
        author="Miguel de Cervantes",
        isbn="9788424116859",
        location="Stack B, shelf 3",
    )


@pytest.fixture
def digital_copy() -> DigitalCopy:
    return DigitalCopy(
        id="res_ebook_sql",
        title="Database Systems",
        author="Elmasri & Navathe",
        file_format="EPUB",
    )


@pytest.fixture
def audio_copy() -> AudioCopy:
    return AudioCopy(
        id="res_audio_cien",
        title="Cien años de soledad",
        author="Gabriel García Márquez",
        duration_minutes=905,
        narrator="Alejandro Bertolo",
    )


@pytest.fixture
def service(
    settings,
    clock,
    student,
    second_student,
    faculty,
    coordinator,
    librarian,
    physical_copy,
    digital_copy,
    audio_copy,
) -> CirculationService:
    """Provide a service with every fixture user and resource registered."""
    service = CirculationService(settings=settings, clock=clock)
    for user in (student, second_student, faculty, coordinator, librarian):
        service.register_user(user)
    for resource in (physical_copy, digital_copy, audio_copy):
        service.register_resource(resource)
    return service
