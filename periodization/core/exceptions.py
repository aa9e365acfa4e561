class DomainError(Exception):
    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(DomainError):
    def __init__(self, entity: str, message: str | None = None, details: dict | None = None):
        code = f"NF_{entity.upper()}_001"
        msg = message or f"{entity} not found"
        super().__init__(code, msg, details)


class ValidationError(DomainError):
    def __init__(self, field: str, message: str, details: dict | None = None):
        code = f"VAL_{field.upper()}_001"
        msg = f"Validation failed for {field}: {message}"
        super().__init__(code, msg, details or {"field": field})


class BusinessRuleError(DomainError):
    def __init__(self, message: str, code: str = "BR_001", details: dict | None = None):
        super().__init__(code, message, details)


class ConflictError(DomainError):
    def __init__(self, message: str, code: str = "CF_001", details: dict | None = None):
        super().__init__(code, message, details)


class AuthenticationError(DomainError):
    def __init__(self, message: str, code: str = "AUTH_001", details: dict | None = None):
        super().__init__(code, message, details)


class AuthorizationError(DomainError):
    def __init__(self, message: str, code: str = "AUTH_006", details: dict | None = None):
        super().__init__(code, message, details)


class DataIntegrityError(DomainError):
    """Stored structure references something that does not exist.

    Raised when the catalog invariants were violated upstream (dangling phase or
    microcycle ids). Never user-recoverable; the handler hides the details.
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("INTEGRITY_001", message, details)


# Template catalog

class MalformedTemplateError(ValidationError):
    def __init__(self, violations: list[str]):
        super().__init__(
            "template",
            f"{len(violations)} structural violation(s)",
            {"field": "template", "violations": violations},
        )
        self.violations = violations


class TemplateLockedError(BusinessRuleError):
    def __init__(self, template_id: int, subscription_count: int):
        super().__init__(
            "Template structure cannot change while athletes are subscribed",
            code="BR_TEMPLATE_LOCKED",
            details={"template_id": template_id, "subscriptions": subscription_count},
        )


# Slot resolution

class MissingRequiredSlotError(ValidationError):
    def __init__(self, slot_id: int, slot_label: str):
        super().__init__(
            "slot",
            f"Select an exercise for {slot_label}",
            {"slot_id": slot_id, "slot_label": slot_label},
        )
        self.code = "VAL_SLOT_REQUIRED"
        self.slot_label = slot_label


class UnknownSlotError(ValidationError):
    def __init__(self, slot_ids: list[int], template_id: int):
        super().__init__(
            "slot",
            f"Slots {slot_ids} do not belong to template {template_id}",
            {"slot_ids": slot_ids, "template_id": template_id},
        )
        self.code = "VAL_SLOT_UNKNOWN"


class UnexpectedSelectionsError(ValidationError):
    def __init__(self, template_id: int):
        super().__init__(
            "selections",
            "This program does not use exercise slots",
            {"template_id": template_id},
        )
        self.code = "VAL_SELECTIONS_UNEXPECTED"


class UnknownExerciseError(ValidationError):
    def __init__(self, exercise_ids: list[int]):
        super().__init__(
            "exercise",
            f"Exercises {exercise_ids} do not exist",
            {"exercise_ids": exercise_ids},
        )
        self.code = "VAL_EXERCISE_UNKNOWN"


class SlotConstraintViolationError(ValidationError):
    def __init__(self, warnings: list[str]):
        super().__init__(
            "slot",
            "Selected exercises do not fit their slots",
            {"warnings": warnings},
        )
        self.code = "VAL_SLOT_CONSTRAINT"


# Subscription lifecycle

class AlreadyEnrolledError(ConflictError):
    """The user already follows this template; carries the existing enrollment."""

    def __init__(self, subscription):
        super().__init__(
            "Already subscribed to this program",
            code="CF_ALREADY_ENROLLED",
            details={"subscription_id": subscription.id, "program_id": subscription.program_id},
        )
        self.subscription = subscription
        self.subscription_id = subscription.id


class CannotActivateTerminalSubscriptionError(BusinessRuleError):
    def __init__(self, subscription_id: int, status: str):
        super().__init__(
            f"Subscription is {status.lower()} and cannot be made active",
            code="BR_SUBSCRIPTION_TERMINAL",
            details={"subscription_id": subscription_id, "status": status},
        )


class InvalidTransitionError(BusinessRuleError):
    def __init__(self, subscription_id: int, current: str, requested: str):
        super().__init__(
            f"Cannot move subscription from {current} to {requested}",
            code="BR_INVALID_TRANSITION",
            details={"subscription_id": subscription_id, "from": current, "to": requested},
        )


class NoActiveRelationshipError(AuthorizationError):
    def __init__(self, trainer_id: int, athlete_id: int):
        super().__init__(
            "No active relationship with this athlete",
            code="AUTH_NO_RELATIONSHIP",
            details={"trainer_id": trainer_id, "athlete_id": athlete_id},
        )
