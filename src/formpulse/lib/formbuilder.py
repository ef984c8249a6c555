# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

__copyright__ = "(C) 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>"
__author__ = "trimarsanto@gmail.com"
__license__ = "MPL-2.0"

import re
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, NamedTuple

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable

from . import validators as v
from .allowlist import AllowList
from .callbacks import CallbackChain, FormConcern, FormState
from .exceptions import FormDefinitionError
from .fields import Field, FieldDescriptor, FieldView
from .needs import Need, NeedsContext, NeedsDeclaration, Operation
from .pipeline import ValidationPipeline

if TYPE_CHECKING:
    from ..db.store import RecordStore


class InputField:
    """
    Declares one field on a Form class. Reading the attribute from a form
    instance returns the bound Field.
    """

    def __init__(
        self,
        value_type: type = str,
        label: str | None = None,
        nullable: bool = True,
        virtual: bool = False,
        default: Any = None,
        rules: Iterable[v.Rule] = (),
    ) -> None:
        self.value_type = value_type
        self.label = label
        self.nullable = nullable
        self.virtual = virtual
        self.default = default
        self.rules = tuple(rules)
        self._name: str | None = None

    def __set_name__(self, owner: Any, name: str) -> None:
        self._name = name
        self._owner = owner

    def __set__(self, instance: Any, value: Any) -> None:
        raise AttributeError(
            f"InputField {self._name} cannot be replaced, assign to .value instead"
        )

    def __get__(self, instance: Any, owner: Any) -> Any:
        """
        Docstring for __get__

        :param instance: the instance of the owner class
        :type instance: Any [usually Form]
        :param owner: the owner class
        :type owner: Any [usually type[Form]]
        :return: the bound Field for instances, the declaration itself for the class
        :rtype: Any
        """
        if instance is None:
            return self
        return instance.fields[self._name]

    def descriptor(self) -> FieldDescriptor:
        if self._name is None:
            raise FormDefinitionError("InputField has not been attached to a form class")
        return FieldDescriptor(
            name=self._name,
            value_type=self.value_type,
            nullable=self.nullable,
            persisted=not self.virtual,
            label=self.label,
            default=self.default,
            rules=self.rules,
        )


def StringField(
    label: str | None = None,
    nullable: bool = True,
    max_length: int | None = None,
    min_length: int | None = None,
    **kwargs: Any,
) -> InputField:
    rules = v.field_rules(max_length=max_length, min_length=min_length)
    return InputField(str, label=label, nullable=nullable, rules=rules, **kwargs)


def AlphanumField(
    label: str | None = None,
    nullable: bool = True,
    max_length: int | None = None,
    **kwargs: Any,
) -> InputField:
    return InputField(
        str, label=label, nullable=nullable, rules=v.Alphanum(max_length), **kwargs
    )


def AlphanumPlusField(
    label: str | None = None,
    nullable: bool = True,
    max_length: int | None = None,
    **kwargs: Any,
) -> InputField:
    return InputField(
        str, label=label, nullable=nullable, rules=v.AlphanumPlus(max_length), **kwargs
    )


def EmailField(
    label: str | None = None,
    nullable: bool = True,
    max_length: int | None = 64,
    **kwargs: Any,
) -> InputField:
    return InputField(
        str, label=label, nullable=nullable, rules=v.Email(max_length), **kwargs
    )


def IntField(
    label: str | None = None,
    nullable: bool = True,
    min_value: int | None = None,
    max_value: int | None = None,
    **kwargs: Any,
) -> InputField:
    rules = v.field_rules(min_value=min_value, max_value=max_value)
    return InputField(int, label=label, nullable=nullable, rules=rules, **kwargs)


def FloatField(
    label: str | None = None,
    nullable: bool = True,
    min_value: float | None = None,
    max_value: float | None = None,
    **kwargs: Any,
) -> InputField:
    rules = v.field_rules(min_value=min_value, max_value=max_value)
    return InputField(float, label=label, nullable=nullable, rules=rules, **kwargs)


def DecimalField(
    label: str | None = None,
    nullable: bool = True,
    min_value: Decimal | None = None,
    max_value: Decimal | None = None,
    **kwargs: Any,
) -> InputField:
    rules = v.field_rules(min_value=min_value, max_value=max_value)
    return InputField(Decimal, label=label, nullable=nullable, rules=rules, **kwargs)


def BooleanField(
    label: str | None = None, nullable: bool = True, **kwargs: Any
) -> InputField:
    return InputField(bool, label=label, nullable=nullable, **kwargs)


def DateField(label: str | None = None, nullable: bool = True, **kwargs: Any) -> InputField:
    return InputField(date, label=label, nullable=nullable, **kwargs)


def DateTimeField(
    label: str | None = None, nullable: bool = True, **kwargs: Any
) -> InputField:
    return InputField(datetime, label=label, nullable=nullable, **kwargs)


def UUIDField(label: str | None = None, nullable: bool = True, **kwargs: Any) -> InputField:
    return InputField(uuid.UUID, label=label, nullable=nullable, **kwargs)


def SelectField(
    label: str | None = None,
    options: Iterable[Any] = (),
    value_type: type = str,
    nullable: bool = True,
    **kwargs: Any,
) -> InputField:
    rules = v.field_rules(options=options)
    return InputField(value_type, label=label, nullable=nullable, rules=rules, **kwargs)


class SaveResult(NamedTuple):
    form: Form
    record: Any | None

    @property
    def saved(self) -> bool:
        return self.record is not None


class Form:
    """
    This class functions as parameter filter, validator and save orchestrator

    Subclasses declare InputFields as class attributes, list the fields that
    may be set from parameters in `permit`, list external dependencies in
    `needs`, and may override prepare(), before_save() and after_save().
    """

    permit: tuple[str, ...] = ()
    needs: tuple[Need, ...] = ()
    concerns: tuple[FormConcern, ...] = ()
    param_key: str | None = None

    __descriptors__: tuple[FieldDescriptor, ...] = ()
    __allowlist__: AllowList
    __needs__: NeedsDeclaration
    __chain__: CallbackChain

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # Automatically build the per-type schema, shared read-only by instances
        descriptors = cls.collect_descriptors()
        names = [d.name for d in descriptors]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise FormDefinitionError(f"Duplicate field(s): {', '.join(duplicates)}")

        cls.__descriptors__ = tuple(descriptors)
        cls.__allowlist__ = AllowList(descriptors, cls.permit)
        cls.__needs__ = NeedsDeclaration(cls.needs)
        cls.__chain__ = CallbackChain(cls, cls.concerns)
        cls.form_name = cls.__name__

    @classmethod
    def collect_descriptors(cls) -> list[FieldDescriptor]:
        declared: dict[str, InputField] = {}
        for klass in reversed(cls.__mro__):
            for name, attr in vars(klass).items():
                if isinstance(attr, InputField):
                    declared[name] = attr
        return [input_field.descriptor() for input_field in declared.values()]

    def __init__(
        self,
        params: Mapping[str, Any] | None = None,
        *,
        record: Any | None = None,
        context: NeedsContext | Mapping[str, Any] | None = None,
    ) -> None:
        self.params: dict[str, Any] = dict(params or {})
        self.record: Any | None = record
        self.operation = Operation.UPDATE if record is not None else Operation.CREATE
        if not isinstance(context, NeedsContext):
            context = self.__needs__.bind(
                self.form_name, self.operation, context or {}, check_required=False
            )
        self.context: NeedsContext = context
        self.state: FormState = FormState.CONSTRUCTED

        self.fields: dict[str, Field] = {}
        for descriptor in self.__descriptors__:
            field = Field(descriptor, self.param_key_name(descriptor.name))
            if record is not None and descriptor.persisted:
                field.seed(getattr(record, descriptor.name, None))
            else:
                field.seed(descriptor.default)
            self.fields[descriptor.name] = field

        self.__allowlist__.assign(self.fields, self.params)
        self.pipeline = ValidationPipeline(self.fields)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.operation.value} {self.state.value}>"

    def param_key_name(self, name: str) -> str:
        if self.param_key:
            return f"{self.param_key}:{name}"
        return name

    # override the following methods

    def prepare(self) -> Any:
        """
        Register validators and set derived values, may be a coroutine
        """

    def before_save(self) -> Any:
        """
        Last chance to set values, runs only when the form is valid
        """

    def after_save(self, record: Any) -> Any:
        """
        Runs with the persisted record
        """

    # context

    def need(self, name: str) -> Any:
        """
        Get a context value, None if it is scoped to the other operation
        """
        if name not in self.__needs__:
            raise KeyError(f"{self.form_name} does not declare need {name!r}")
        return self.context.get(name)

    # validators, usable only inside prepare()

    def validate(
        self,
        field: Field | str,
        rule: v.Rule | Callable[[Any], Any],
        message: str | None = None,
        skip_blank: bool = True,
    ) -> bool:
        return self.pipeline.validate(field, rule, message=message, skip_blank=skip_blank)

    def validate_required(self, *fields: Field | str, message: str | None = None) -> bool:
        results = [self.validate(f, v.Required(message=message)) for f in fields]
        return all(results)

    def validate_confirmation_of(
        self, field: Field | str, with_field: Field | str, message: str | None = None
    ) -> bool:
        other = with_field.name if isinstance(with_field, Field) else with_field
        return self.validate(field, v.ConfirmationOf(other=other, message=message))

    def validate_acceptance_of(self, field: Field | str, message: str | None = None) -> bool:
        return self.validate(field, v.AcceptanceOf(message=message))

    def validate_size_of(
        self,
        field: Field | str,
        min_length: int | None = None,
        max_length: int | None = None,
        message: str | None = None,
    ) -> bool:
        return self.validate(
            field, v.SizeOf(min_length=min_length, max_length=max_length, message=message)
        )

    def validate_inclusion_of(
        self, field: Field | str, options: Iterable[Any], message: str | None = None
    ) -> bool:
        return self.validate(field, v.InclusionOf(options=tuple(options), message=message))

    def validate_format_of(
        self, field: Field | str, pattern: Any, message: str | None = None
    ) -> bool:
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        return self.validate(field, v.FormatOf(pattern=pattern, message=message))

    def validate_numeric(
        self,
        field: Field | str,
        min_value: Any = None,
        max_value: Any = None,
        message: str | None = None,
    ) -> bool:
        return self.validate(
            field, v.Numeric(min_value=min_value, max_value=max_value, message=message)
        )

    # results

    @property
    def submitted(self) -> bool:
        return self.pipeline.done

    @property
    def errors(self) -> bool:
        return self.pipeline.errors

    @property
    def valid(self) -> bool:
        return self.submitted and not self.errors

    def error_map(self) -> dict[str, list[str]]:
        return self.pipeline.error_map()

    def view(self, name: str) -> FieldView:
        return self.fields[name].view()

    def views(self) -> dict[str, FieldView]:
        return {name: field.view() for name, field in self.fields.items()}

    def raw_params(self) -> dict[str, Any]:
        """
        The raw parameters that reached a field, for re-rendering or resubmission
        """
        return {
            field.param_key_name: field.param_raw
            for field in self.fields.values()
            if field.was_assigned
        }

    def attributes(self) -> dict[str, Any]:
        """
        The attribute set handed to the record store, persisted fields only
        """
        attrs = {}
        for name, field in self.fields.items():
            if field.descriptor.virtual:
                continue
            if self.operation is Operation.UPDATE:
                if field.changed:
                    attrs[name] = field.value
            elif field.value is not None or field.explicitly_set:
                attrs[name] = field.value
        return attrs

    def bind_record(self, record: Any) -> None:
        self.record = record
        for field in self.fields.values():
            if field.descriptor.persisted:
                field.seed(getattr(record, field.name, field.value))

    # entry points

    @classmethod
    async def create(
        cls, store: RecordStore, params: Mapping[str, Any], /, **context: Any
    ) -> SaveResult:
        """
        Validate params and insert a new record

        :return: (form, record); record is None when the form is invalid
        """
        ctx = cls.__needs__.bind(cls.form_name, Operation.CREATE, context)
        form = cls(params, context=ctx)
        record = await cls.__chain__.run(form, store.insert)
        return SaveResult(form, record)

    @classmethod
    async def update(
        cls,
        store: RecordStore,
        record: Any,
        params: Mapping[str, Any],
        /,
        **context: Any,
    ) -> SaveResult:
        """
        Validate params against an existing record and update it

        Allowed fields missing from params keep their current value.

        :return: (form, record); record is None when the form is invalid
        """
        if record is None:
            raise ValueError(f"{cls.form_name}.update() requires an existing record")
        ctx = cls.__needs__.bind(cls.form_name, Operation.UPDATE, context)
        form = cls(params, record=record, context=ctx)
        identity = store.identity_of(record)

        async def persist(attributes: dict[str, Any]) -> Any:
            return await store.update_by_identity(identity, attributes)

        saved = await cls.__chain__.run(form, persist)
        return SaveResult(form, saved)

    @classmethod
    async def check(
        cls, params: Mapping[str, Any], /, record: Any | None = None, **context: Any
    ) -> Form:
        """
        Run prepare and validation only, nothing is stored
        """
        operation = Operation.UPDATE if record is not None else Operation.CREATE
        ctx = cls.__needs__.bind(cls.form_name, operation, context)
        form = cls(params, record=record, context=ctx)
        await cls.__chain__.run(form, None)
        return form


Form.__allowlist__ = AllowList((), ())
Form.__needs__ = NeedsDeclaration(())
Form.__chain__ = CallbackChain(Form)
Form.form_name = "Form"


# columns maintained by the database or by the audit mixins
MANAGED_COLUMNS = frozenset({"created_at", "updated_at", "sa_orm_sentinel"})


class ModelForm(Form):
    """
    A Form whose fields are derived from the columns of a SQLAlchemy model.

    Explicitly declared InputFields win over derived ones; primary keys,
    audit timestamps and names in `exclude` are skipped.
    """

    model_type: type[Any] | None = None
    exclude: tuple[str, ...] = ()

    @classmethod
    def collect_descriptors(cls) -> list[FieldDescriptor]:
        descriptors = super().collect_descriptors()
        model_type = cls.model_type
        if model_type is None:
            return descriptors

        try:
            mapper = sa_inspect(model_type)
        except NoInspectionAvailable:
            raise FormDefinitionError(
                f"{cls.__name__}.model_type {model_type!r} is not a mapped class"
            ) from None

        declared = {d.name for d in descriptors}
        for attr in mapper.column_attrs:
            name = attr.key
            if name in declared or name in cls.exclude:
                continue
            if name.startswith("_") or name in MANAGED_COLUMNS:
                continue
            column = attr.columns[0]
            if column.primary_key:
                continue
            input_field = input_field_from_column(column)
            setattr(cls, name, input_field)
            input_field.__set_name__(cls, name)
            descriptors.append(input_field.descriptor())

        return descriptors

    @classmethod
    def store_for(cls, session: Any, **kwargs: Any) -> RecordStore:
        """
        Get the record store for model_type on the given database session
        """
        from ..db import store_factory

        if cls.model_type is None:
            raise FormDefinitionError(f"{cls.__name__} has no model_type")
        return store_factory(session, cls.model_type, **kwargs)


def input_field_from_column(column: Any) -> InputField:
    try:
        value_type = column.type.python_type
    except NotImplementedError:
        value_type = str

    default = None
    scalar = getattr(column.default, "is_scalar", False)
    if scalar:
        default = column.default.arg

    # a server default or a generated (callable or SQL) default fills the
    # column when the form leaves it absent
    generated = column.default is not None and not scalar
    nullable = bool(column.nullable) or column.server_default is not None or generated

    rules: list[v.Rule] = []
    max_length = getattr(column.type, "length", None)
    if value_type is str and max_length:
        rules.append(v.SizeOf(max_length=max_length))

    return InputField(value_type, nullable=nullable, default=default, rules=rules)


# EOF
