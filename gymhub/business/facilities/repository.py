from __future__ import annotations

from gymhub.platform.security.repository import BaseRepository


class GymRepository(BaseRepository):
    resource = "facilities.gym"


class LocationRepository(BaseRepository):
    resource = "facilities.location"


class EquipmentRepository(BaseRepository):
    resource = "facilities.equipment"
