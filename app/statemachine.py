from django.utils import timezone

from app.exceptions import ConflictError, InvalidTransitionError


class StatusTransitionMixin:
    """
    Status state machine for models with a ``status`` field.

    Subclasses declare ``VALID_TRANSITIONS`` mapping each status to the set of
    statuses it may move to. Anything not listed is refused.
    """
    VALID_TRANSITIONS = {}

    def can_transition_to(self, new_status) -> bool:
        return new_status in self.VALID_TRANSITIONS.get(self.status, set())

    def check_transition(self, new_status):
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(
                f"{self.__class__.__name__} {self.pk} cannot move from {self.status} to {new_status}",
                record_id=self.pk,
                current_status=self.status,
                requested_status=new_status,
            )

    def transition_to(self, new_status, **fields):
        """
        Persist a status change as a compare-and-swap on the current status.

        Extra keyword arguments are written in the same UPDATE.

        Returns:
            The previous status

        Raises:
            InvalidTransitionError: The move is not allowed from the current status
            ConflictError: The stored status changed since this instance was read
        """
        self.check_transition(new_status)
        now = timezone.now()
        updated = type(self).objects.filter(pk=self.pk, status=self.status).update(
            status=new_status,
            updated_at=now,
            **fields
        )
        if not updated:
            raise ConflictError(
                f"{self.__class__.__name__} {self.pk} changed concurrently",
                record_id=self.pk,
                expected_status=self.status,
            )

        previous = self.status
        self.status = new_status
        self.updated_at = now
        for name, value in fields.items():
            setattr(self, name, value)
        return previous
