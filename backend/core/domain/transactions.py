"""
core.domain.transactions — Helpers for safe state transitions.

Wraps ``transaction.atomic`` and ``select_for_update`` into reusable
patterns so that every app's service layer follows the same
concurrency-safe approach.

Design goals
------------
* State-transition reads always lock the row first
  (``select_for_update``) so two concurrent requests cannot both
  observe the same "before" state.
* Helpers stay **generic** — they accept any Django ``Model`` class or
  instance and a field name.

Usage::

    from core.domain.transactions import atomic_transition, lock_for_update

    report = atomic_transition(
        instance=report,
        status_field="validation_status",
        target_status="validated",
        allowed_sources={"pending"},
    )

    with transaction.atomic():
        assignment = lock_for_update(Assignment, assignment_id)
        ...
"""

from __future__ import annotations

from typing import Any, Iterable, TypeVar

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models, transaction

from core.domain.exceptions import InvalidTransition, NotFound

M = TypeVar("M", bound=models.Model)


def atomic_transition(
    *,
    instance: M,
    status_field: str = "status",
    target_status: str,
    allowed_sources: Iterable[str] | None = None,
    save_fields: Iterable[str] | None = None,
) -> M:
    """
    Atomically transition a model instance from one status to another.

    Steps performed inside ``transaction.atomic()``:
        1. Re-fetch the instance with ``select_for_update()``.
        2. Verify the current value of ``status_field`` is among
           ``allowed_sources`` (when given); raise ``InvalidTransition``
           otherwise.
        3. Copy ``save_fields`` from the caller's instance, set the
           target status, and save.

    Args:
        instance:        The model instance to transition.
        status_field:    Name of the status field.  Defaults to ``"status"``.
        target_status:   The desired new value.
        allowed_sources: Status values from which the transition is
                         permitted.  ``None`` accepts any current value.
        save_fields:     Extra fields whose values on ``instance`` are
                         written alongside the status.

    Returns:
        The caller's instance, refreshed from the database.

    Raises:
        NotFound:          If the instance no longer exists in the DB.
        InvalidTransition: If the current status is not in ``allowed_sources``.
    """
    model_class = type(instance)
    extra_fields = list(save_fields or [])

    with transaction.atomic():
        locked = lock_for_update(model_class, instance.pk)
        current = getattr(locked, status_field)

        if allowed_sources is not None and current not in allowed_sources:
            raise InvalidTransition(
                current=str(current),
                target=target_status,
                reason=(
                    f"allowed source states: "
                    f"{', '.join(str(s) for s in allowed_sources)}"
                ),
            )

        for field in extra_fields:
            setattr(locked, field, getattr(instance, field))
        setattr(locked, status_field, target_status)

        update_fields = {status_field, *extra_fields}
        if any(f.name == "updated_at" for f in model_class._meta.concrete_fields):
            update_fields.add("updated_at")
        locked.save(update_fields=list(update_fields))

    instance.refresh_from_db()
    return instance


def lock_for_update(model_class: type[M], pk: Any) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Raises:
        NotFound: If no row with that PK exists.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except (model_class.DoesNotExist, DjangoValidationError, ValueError, TypeError):
        raise NotFound(f"{model_class.__name__} with pk={pk} does not exist.")
