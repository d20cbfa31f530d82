import pytest

from importer.validation.business_rules import FieldValidator, is_valid_rut, rut_check_digit


@pytest.fixture
def validator():
    return FieldValidator()


@pytest.mark.parametrize("rut", ["12345678-5", "11111111-1", "22222222-2", "76543210-3", "12.345.678-5"])
def test_valid_ruts(rut):
    assert is_valid_rut(rut)


@pytest.mark.parametrize("rut", ["12345678-9", "1234-5", "abcdefgh-1", "123456789-0", ""])
def test_invalid_ruts(rut):
    assert not is_valid_rut(rut)


def test_check_digit_special_cases():
    assert rut_check_digit("12345678") == "5"
    # remainder 11 → "0", remainder 10 → "K"
    assert {rut_check_digit(str(n)) for n in range(10000000, 10000100)} >= {"0", "K"}


def test_client_row_valid(validator):
    row = {"rut": "12345678-5", "nombre": "Ana", "apellido": "Perez", "email": "ana@example.com"}
    outcome = validator.validate_row(row, "cliente", 2)
    assert outcome.valid
    assert outcome.row_number == 2


def test_client_row_errors(validator):
    row = {
        "rut": "12345678-9",
        "nombre": "A" * 51,
        "apellido": "",
        "email": "not-an-email",
        "telefono": "12ab",
    }
    outcome = validator.validate_row(row, "cliente", 4)

    assert outcome.errors == (
        "Missing required field: apellido",
        "Invalid email: not-an-email",
        "Invalid RUT: 12345678-9",
        "Invalid phone number: 12ab",
        "Field 'nombre' is too long (max 50 characters)",
    )


def test_product_ranges(validator):
    outcome = validator.validate_row(
        {"codigo": "AB1", "nombre": "x", "precio": "0", "stock": "-1"}, "producto"
    )
    assert outcome.errors == ("Price must be greater than zero", "Stock cannot be negative")

    outcome = validator.validate_row(
        {"codigo": "ab", "nombre": "x", "precio": "1000000", "stock": "1000000"}, "producto"
    )
    assert outcome.errors == (
        "Invalid product code: AB. Use 3-20 upper-case letters or digits",
        "Price exceeds the maximum allowed (999999.99)",
        "Stock exceeds the maximum allowed (999999)",
    )


def test_product_non_numeric_price(validator):
    outcome = validator.validate_row({"codigo": "AB1", "nombre": "x", "precio": "cheap"}, "producto")
    assert outcome.errors == ("Invalid price: cheap",)


def test_user_rules(validator):
    row = {
        "username": "a!",
        "password": "*****",
        "nombre": "Ana",
        "apellido": "Perez",
        "email": "ana@example.com",
        "roles": "ADMIN;janitor",
    }
    outcome = validator.validate_row(row, "usuario", 7)

    assert outcome.errors == (
        "Invalid username: a!. Use 3-20 letters, digits, dots, hyphens or underscores",
        "Password must be at least 6 characters",
    )
    assert outcome.warnings == ("Unknown role: JANITOR",)


def test_unknown_entity_type(validator):
    outcome = validator.validate_row({}, "proveedor", 2)
    assert not outcome.valid
