import pytest

from classbook.services.reservation_service import ReservationService


@pytest.fixture
def reservation_service(db) -> ReservationService:
    return ReservationService(db)
