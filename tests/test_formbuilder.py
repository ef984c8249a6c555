from __future__ import annotations

from datetime import date

import pytest

from formpulse.lib import formbuilder as fb
from formpulse.lib.exceptions import FormDefinitionError
from formpulse.lib.fields import FieldView
from formpulse.lib.needs import Operation

from sample_forms import AgeCheckedPersonForm, MemberForm, PersonForm


@pytest.mark.anyio
async def test_blank_required_field(store):
    form, record = await PersonForm.create(store, {"name": ""})

    assert record is None
    assert form.errors is True
    assert form.view("name").error_messages() == ("This field is required.",)
    assert form.view("age").has_errors() is False
    assert store.calls == []


@pytest.mark.anyio
async def test_prepare_validator(store):
    form, record = await AgeCheckedPersonForm.create(store, {"name": "Sam", "age": "13"})
    assert record is not None
    assert form.valid is True

    form, record = await AgeCheckedPersonForm.create(store, {"name": "Kim", "age": "12"})
    assert record is None
    assert form.error_map() == {"age": ["must be at least 13"]}


@pytest.mark.anyio
async def test_create_returns_saved_record(store):
    result = await PersonForm.create(store, {"name": "Sam", "age": "21"})
    form, record = result

    assert result.saved is True
    assert record.name == "Sam"
    assert record.age == 21
    assert record.id == 1
    assert form.record is record
    assert store.calls == [("insert", {"name": "Sam", "age": 21, "admin": False})]


@pytest.mark.anyio
async def test_create_leaves_absent_nullable_fields_out(store):
    await PersonForm.create(store, {"name": "Sam"})
    assert store.calls == [("insert", {"name": "Sam", "admin": False})]


@pytest.mark.anyio
async def test_create_strips_string_params(store):
    await PersonForm.create(store, {"name": "  Sam  ", "age": "21"})
    assert store.calls == [("insert", {"name": "Sam", "age": 21, "admin": False})]

    form, record = await PersonForm.create(store, {"name": "   "})
    assert record is None
    assert form.error_map() == {"name": ["This field is required."]}
    assert len(store.calls) == 1


@pytest.mark.anyio
async def test_update_sends_only_changed_fields(store):
    existing = store.add_existing(name="Sam", age=20, admin=True)

    form, record = await PersonForm.update(store, existing, {"age": "21"})

    assert record is existing
    assert record.name == "Sam"
    assert record.age == 21
    assert record.admin is True
    assert store.calls == [("update", existing.id, {"age": 21})]
    assert form.operation is Operation.UPDATE


@pytest.mark.anyio
async def test_update_without_changes(store):
    existing = store.add_existing(name="Sam", age=20, admin=False)
    form, record = await PersonForm.update(store, existing, {"name": "Sam"})
    assert record is existing
    assert store.calls == [("update", existing.id, {})]


@pytest.mark.anyio
async def test_update_can_clear_a_nullable_field(store):
    existing = store.add_existing(name="Sam", age=20, admin=False)
    await PersonForm.update(store, existing, {"age": ""})
    assert store.calls == [("update", existing.id, {"age": None})]
    assert existing.age is None


@pytest.mark.anyio
async def test_update_rejects_clearing_a_required_field(store):
    existing = store.add_existing(name="Sam", age=20, admin=False)
    form, record = await PersonForm.update(store, existing, {"name": " "})
    assert record is None
    assert form.error_map() == {"name": ["This field is required."]}
    assert existing.name == "Sam"


@pytest.mark.anyio
async def test_update_requires_a_record(store):
    with pytest.raises(ValueError):
        await PersonForm.update(store, None, {"name": "Sam"})


@pytest.mark.anyio
async def test_unpermitted_field_is_not_stored(store):
    form, record = await PersonForm.create(store, {"name": "Sam", "admin": "true"})
    assert record.admin is False
    assert store.calls[0][1]["admin"] is False


@pytest.mark.anyio
async def test_rebuilding_from_raw_params_gives_the_same_errors():
    first = await PersonForm.check({"name": "", "age": "many", "admin": "1"})
    raw = first.raw_params()
    assert raw == {"name": "", "age": "many"}

    second = await PersonForm.check(raw)
    assert second.error_map() == first.error_map()


@pytest.mark.anyio
async def test_check_never_stores():
    form = await PersonForm.check({"name": "Sam", "age": "40"})
    assert form.valid is True
    assert form.record is None
    assert form.attributes() == {"name": "Sam", "age": 40, "admin": False}


@pytest.mark.anyio
async def test_check_against_existing_record(store):
    existing = store.add_existing(name="Sam", age=20, admin=False)
    form = await PersonForm.check({"age": "21"}, record=existing)
    assert form.valid is True
    assert form.attributes() == {"age": 21}
    assert existing.age == 20


def test_views_are_read_only_snapshots_of_fields():
    form = PersonForm({"name": "Sam"})
    views = form.views()
    assert set(views) == {"name", "age", "admin"}
    assert all(isinstance(view, FieldView) for view in views.values())
    assert views["name"].value() == "Sam"
    assert views["admin"].label == "Administrator"


def test_fields_are_bound_per_instance():
    first = PersonForm({"name": "Sam"})
    second = PersonForm({"name": "Kim"})
    assert first.name is not second.name
    assert first.name.value == "Sam"
    assert second.name.value == "Kim"
    assert isinstance(PersonForm.name, fb.InputField)


def test_bound_field_cannot_be_replaced():
    form = PersonForm({})
    with pytest.raises(AttributeError):
        form.name = "Sam"


def test_declared_defaults_seed_create():
    form = MemberForm({})
    assert form.role.value == "member"
    assert form.role.changed is False


def test_member_form_uses_namespaced_params():
    form = MemberForm({"member:login": "sam", "member:email": "sam@example.org"})
    assert form.raw_params() == {
        "member:login": "sam",
        "member:email": "sam@example.org",
    }


@pytest.mark.anyio
async def test_member_form_rules(store):
    form, record = await MemberForm.create(
        store, {"member:login": "sam smith", "member:email": "nope"}
    )
    assert record is None
    assert form.error_map() == {
        "login": ["This field must be alphanumeric or contain '+', '-', '.', or '_'."],
        "email": ["This field must be a valid email address."],
    }


@pytest.mark.anyio
async def test_select_field_options(store):
    class RoleForm(fb.Form):
        permit = ("role",)

        role = fb.SelectField(options=("member", "admin"), nullable=False)

    form, record = await RoleForm.create(store, {"role": "root"})
    assert form.error_map() == {"role": ["This field is not one of the allowed options."]}


@pytest.mark.anyio
async def test_typed_fields(store):
    class EventForm(fb.Form):
        permit = ("day", "seats", "public")

        day = fb.DateField(nullable=False)
        seats = fb.IntField(min_value=1, max_value=100)
        public = fb.BooleanField(default=False)

    form, record = await EventForm.create(
        store, {"day": "2024-05-01", "seats": "250", "public": "yes"}
    )
    assert record is None
    assert form.error_map() == {"seats": ["This field must be at most 100."]}
    assert form.day.value == date(2024, 5, 1)
    assert form.public.value is True


@pytest.mark.anyio
async def test_float_field_rejects_non_finite_values(store):
    class ReadingForm(fb.Form):
        permit = ("level",)

        level = fb.FloatField(min_value=0, max_value=10)

    for raw in ("nan", "inf", "-inf"):
        form, record = await ReadingForm.create(store, {"level": raw})
        assert record is None
        assert form.error_map() == {"level": ["This field must be a number."]}
    assert store.calls == []


@pytest.mark.anyio
async def test_virtual_fields_are_never_stored(store):
    class SignupForm(fb.Form):
        permit = ("login", "password", "password_confirmation")

        login = fb.StringField(nullable=False)
        password = fb.StringField(virtual=True, min_length=4)
        password_confirmation = fb.StringField(virtual=True)

        def prepare(self):
            self.validate_required(self.password)
            self.validate_confirmation_of(self.password_confirmation, self.password)

    form, record = await SignupForm.create(
        store, {"login": "sam", "password": "secret", "password_confirmation": "secret"}
    )
    assert record is not None
    assert store.calls == [("insert", {"login": "sam"})]

    form, record = await SignupForm.create(store, {"login": "kim"})
    assert form.error_map() == {"password": ["This field is required."]}


@pytest.mark.anyio
async def test_validate_helpers(store):
    class ProfileForm(fb.Form):
        permit = ("handle", "bio", "code", "score")

        handle = fb.StringField()
        bio = fb.StringField()
        code = fb.StringField()
        score = fb.FloatField()

        def prepare(self):
            self.validate_size_of(self.handle, min_length=3)
            self.validate_inclusion_of("bio", ["short", "long"])
            self.validate_format_of(self.code, r"^[A-Z]{3}$", message="must be three capitals")
            self.validate_numeric(self.score, max_value=5.0)

    form = await ProfileForm.check(
        {"handle": "ab", "bio": "medium", "code": "abc", "score": "5.5"}
    )
    assert form.error_map() == {
        "handle": ["This field must be at least 3 characters long."],
        "bio": ["This field is not one of the allowed options."],
        "code": ["must be three capitals"],
        "score": ["This field must be at most 5.0."],
    }


def test_duplicate_field_across_inheritance_is_overridden():
    class Base(fb.Form):
        name = fb.StringField()

    class Child(Base):
        name = fb.StringField(nullable=False)

    assert [d.name for d in Child.__descriptors__] == ["name"]
    assert Child.__descriptors__[0].nullable is False


def test_model_form_requires_mapped_class():
    with pytest.raises(FormDefinitionError):

        class NotMapped(fb.ModelForm):
            model_type = dict
