import pytest

from mrcars_admin.forms import Form, ValidationError, require_reason


def test_valid_form_returns_cleaned_values():
    values = (
        Form({"email": " John@Example.com ", "username": "john", "age": "30", "active": "on"})
        .email("email")
        .text("username", required=True, min_len=2)
        .integer("age", minv=18, maxv=99)
        .boolean("active")
        .validate()
    )
    assert values == {"email": "john@example.com", "username": "john", "age": 30, "active": True}


def test_errors_are_collected_per_field():
    with pytest.raises(ValidationError) as exc:
        (
            Form({"email": "nope", "username": "", "ip": "999.1.1.1", "when": "tomorrow"})
            .email("email")
            .text("username", required=True)
            .ip_address("ip")
            .date("when")
            .validate()
        )
    errors = exc.value.errors
    assert errors["email"] == "Invalid email address"
    assert errors["username"] == "Username is required"
    assert "not a valid IP address" in errors["ip"]
    assert "YYYY-MM-DD" in errors["when"]


def test_choice_uses_default_and_rejects_unknown():
    assert Form({}).choice("role", ("user", "admin"), default="user").validate() == {"role": "user"}
    with pytest.raises(ValidationError):
        Form({"role": "owner"}).choice("role", ("user", "admin")).validate()


def test_integer_bounds():
    with pytest.raises(ValidationError) as exc:
        Form({"months": "30"}).integer("months", minv=1, maxv=24).validate()
    assert exc.value.errors["months"] == "Months must be between 1 and 24"


def test_optional_number_defaults():
    assert Form({}).number("price", default=0.0).validate() == {"price": 0.0}


@pytest.mark.parametrize("reason", [None, "", "   "])
def test_reason_is_required(reason):
    with pytest.raises(ValidationError) as exc:
        require_reason(reason)
    assert exc.value.errors == {"reason": "Reason is required"}


def test_reason_is_trimmed():
    assert require_reason("  wrong amount ") == "wrong amount"
