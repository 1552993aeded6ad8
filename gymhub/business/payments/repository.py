from __future__ import annotations

from gymhub.platform.security.repository import BaseRepository


class PaymentRepository(BaseRepository):
    resource = "payments.payment"
