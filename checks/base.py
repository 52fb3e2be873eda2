from schemas.alerts import Alert
from schemas.trips import TripContext


class ConditionCheck:
    """One source of trip conditions evaluated on every monitor tick."""

    name = "condition"

    async def check(self, context: TripContext) -> list[Alert]:
        raise NotImplementedError
