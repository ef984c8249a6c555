# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

__copyright__ = "(C) 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>"
__author__ = "trimarsanto@gmail.com"
__license__ = "MPL-2.0"

import inspect
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable

from ..config.app import logger
from .exceptions import FatalStoreFailure, FormStateError, StoreConstraintFailure

if TYPE_CHECKING:
    from .formbuilder import Form


class FormState(str, Enum):
    CONSTRUCTED = "constructed"
    PREPARED = "prepared"
    VALIDATED = "validated"
    INVALID = "invalid"
    SAVING = "saving"
    SAVED = "saved"
    AFTER_SAVED = "after_saved"


# linear, no way back
TRANSITIONS: dict[FormState, frozenset[FormState]] = {
    FormState.CONSTRUCTED: frozenset({FormState.PREPARED}),
    FormState.PREPARED: frozenset({FormState.VALIDATED}),
    FormState.VALIDATED: frozenset({FormState.INVALID, FormState.SAVING}),
    FormState.SAVING: frozenset({FormState.SAVED, FormState.INVALID}),
    FormState.SAVED: frozenset({FormState.AFTER_SAVED}),
    FormState.INVALID: frozenset(),
    FormState.AFTER_SAVED: frozenset(),
}

STAGES = ("prepare", "before_save", "after_save")


class FormConcern:
    """
    Reusable piece of form behaviour shared by several form types.

    Override any of the three hooks; hooks left alone are not added to
    the chain. Hooks may be coroutines.
    """

    def prepare(self, form: Form) -> Any:
        pass

    def before_save(self, form: Form) -> Any:
        pass

    def after_save(self, form: Form, record: Any) -> Any:
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


def _overrides(obj: Any, base: type, name: str) -> bool:
    impl = getattr(type(obj) if not isinstance(obj, type) else obj, name, None)
    return impl is not None and impl is not getattr(base, name)


class CallbackChain:
    """
    Ordered hooks of one form type, and the create/update state machine
    that runs them:

        prepare -> validate -> before_save -> persist -> after_save

    Hooks of the listed concerns run first, in listed order, followed by
    the form type's own hook for the stage.
    """

    def __init__(self, form_cls: type, concerns: Iterable[FormConcern] = ()) -> None:
        from .formbuilder import Form

        self.concerns = tuple(concerns)
        self.hooks: dict[str, tuple[Callable[..., Any], ...]] = {}

        for stage in STAGES:
            hooks = [
                getattr(concern, stage)
                for concern in self.concerns
                if _overrides(concern, FormConcern, stage)
            ]
            if _overrides(form_cls, Form, stage):
                # unbound, called with the form instance
                hooks.append(getattr(form_cls, stage))
            self.hooks[stage] = tuple(hooks)

    def __repr__(self) -> str:
        counts = ", ".join(f"{stage}={len(self.hooks[stage])}" for stage in STAGES)
        return f"<CallbackChain {counts}>"

    @staticmethod
    def transition(form: Form, state: FormState) -> None:
        if state not in TRANSITIONS[form.state]:
            raise FormStateError(
                f"{form.__class__.__name__} cannot go from {form.state.value} to {state.value}"
            )
        form.state = state

    async def run_stage(self, stage: str, form: Form, *args: Any) -> None:
        for hook in self.hooks[stage]:
            result = hook(form, *args)
            if inspect.isawaitable(result):
                await result

    async def run(
        self,
        form: Form,
        persist: Callable[[dict[str, Any]], Awaitable[Any]] | None = None,
    ) -> Any | None:
        """
        Drive form through one create or update call

        :param form: a freshly constructed form instance
        :param persist: coroutine function storing the attribute set and
            returning the saved record; None only validates
        :return: the saved record, or None if the form is invalid
        :raises FatalStoreFailure: if the store fails with no usable field
        """
        if form.state is not FormState.CONSTRUCTED:
            raise FormStateError(
                f"{form.__class__.__name__} instance has already been used"
            )

        with form.pipeline.registration():
            await self.run_stage("prepare", form)
        self.transition(form, FormState.PREPARED)

        has_errors = form.pipeline.finish()
        self.transition(form, FormState.VALIDATED)

        if has_errors:
            logger.debug(
                "%s is invalid: %s",
                form.__class__.__name__,
                ", ".join(form.pipeline.error_map()),
            )
            self.transition(form, FormState.INVALID)
            return None

        if persist is None:
            return None

        self.transition(form, FormState.SAVING)
        await self.run_stage("before_save", form)

        attributes = form.attributes()
        try:
            record = await persist(attributes)

        except StoreConstraintFailure as e:
            field = form.fields.get(e.field_hint) if e.field_hint else None
            if field is None:
                logger.error(
                    "%s: store failure with no matching field (hint=%r)",
                    form.__class__.__name__,
                    e.field_hint,
                )
                raise FatalStoreFailure(e.message, e.field_hint) from e

            logger.warning(
                "%s: store rejected field %s", form.__class__.__name__, field.name
            )
            field.add_error(e.message, rule="store")
            self.transition(form, FormState.INVALID)
            return None

        except FatalStoreFailure as e:
            logger.error("%s: fatal store failure: %s", form.__class__.__name__, e)
            raise

        self.transition(form, FormState.SAVED)
        form.bind_record(record)

        await self.run_stage("after_save", form, record)
        self.transition(form, FormState.AFTER_SAVED)

        logger.info("%s saved %r", form.__class__.__name__, record)
        return record


# EOF
