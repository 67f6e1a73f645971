from __future__ import annotations


class RepairShopError(Exception):
    pass


class ConfigError(RepairShopError):
    pass


class DbError(RepairShopError):
    pass


class ValidationError(RepairShopError):
    def __init__(self, message: str, issues: list[dict] | None = None) -> None:
        super().__init__(message)
        self.issues = issues or []


class NotFoundError(RepairShopError):
    def __init__(self, entity: str, entity_id: int) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} with id {entity_id} not found")


class InsufficientStockError(RepairShopError):
    def __init__(self, spare_part_id: int, available: int, requested: int) -> None:
        self.spare_part_id = spare_part_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for spare part {spare_part_id}. "
            f"Available: {available}, Requested: {requested}"
        )


class InvalidStatusTransitionError(RepairShopError):
    def __init__(self, service_id: int, current: str, requested: str) -> None:
        self.service_id = service_id
        self.current = current
        self.requested = requested
        super().__init__(f"Service {service_id} cannot move from '{current}' to '{requested}'")
