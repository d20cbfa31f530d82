from decimal import Decimal

import pytest

from importer.pipeline.errors import MappingError, PersistenceError, ProcessorResolutionError
from importer.processors import ClientProcessor, ProcessorRegistry, ProductProcessor, UserProcessor

from tests.conftest import InMemoryStore, row


# ─── Registry ─────────────────────────────────────────────

def test_resolve_is_case_insensitive(processor_registry):
    assert isinstance(processor_registry.resolve("CLIENTE"), ClientProcessor)
    assert isinstance(processor_registry.resolve(" Producto "), ProductProcessor)
    assert isinstance(processor_registry.resolve("usuario"), UserProcessor)


def test_resolve_miss_lists_supported_types(processor_registry):
    with pytest.raises(ProcessorResolutionError) as exc_info:
        processor_registry.resolve("proveedor")

    assert exc_info.value.supported == ["cliente", "producto", "usuario"]
    assert "cliente, producto, usuario" in str(exc_info.value)


def test_duplicate_registration_rejected():
    registry = ProcessorRegistry([ClientProcessor(InMemoryStore("rut"))])
    with pytest.raises(ProcessorResolutionError):
        registry.register(ClientProcessor(InMemoryStore("rut")))


def test_rebuild_replaces_registrations(processor_registry):
    processor_registry.rebuild([ProductProcessor(InMemoryStore("codigo"))])

    assert processor_registry.supported_types() == ["producto"]
    assert "cliente" not in processor_registry
    with pytest.raises(ProcessorResolutionError):
        processor_registry.resolve("cliente")


# ─── Client ───────────────────────────────────────────────

def test_client_mapping_trims_and_fills_defaults():
    processor = ClientProcessor(InMemoryStore("rut"))
    client = processor.map_row(
        row(RUT=" 12345678-5 ", nombre=" Ana ", apellido="Perez", email="ana@example.com"), 2
    )

    assert client.rut == "12345678-5"
    assert client.nombre == "Ana"
    assert client.telefono is None
    assert client.fecha_registro.tzinfo is not None
    assert processor.validate(client, 2).valid


def test_client_validation_reports_invalid_email():
    processor = ClientProcessor(InMemoryStore("rut"))
    client = processor.map_row(
        row(rut="12345678-5", nombre="Ana", apellido="Perez", email="nope"), 3
    )
    outcome = processor.validate(client, 3)

    assert outcome.errors == ("Invalid email: nope",)


# ─── Product ──────────────────────────────────────────────

def test_product_mapping_coerces_numbers():
    processor = ProductProcessor(InMemoryStore("codigo"))
    product = processor.map_row(row(codigo="ab12", nombre="Tornillo", precio="19.90", stock=""), 2)

    assert product.codigo == "AB12"
    assert product.precio == Decimal("19.90")
    assert product.stock == 0
    assert product.activo is True
    assert processor.natural_key(product) == "AB12"


def test_product_mapping_error_carries_row_and_field():
    processor = ProductProcessor(InMemoryStore("codigo"))
    with pytest.raises(MappingError) as exc_info:
        processor.map_row(row(codigo="AB12", nombre="x", precio="cheap"), 9)

    assert exc_info.value.row_number == 9
    assert exc_info.value.field == "precio"
    assert str(exc_info.value).startswith("Row 9:")


def test_product_stock_must_be_whole_number():
    processor = ProductProcessor(InMemoryStore("codigo"))
    with pytest.raises(MappingError) as exc_info:
        processor.map_row(row(codigo="AB12", nombre="x", precio="1", stock="1.5"), 4)
    assert exc_info.value.field == "stock"


# ─── User ─────────────────────────────────────────────────

def test_user_roles_split_and_flags_coerced():
    processor = UserProcessor(InMemoryStore("username"))
    user = processor.map_row(
        row(
            username="ana",
            password="secret123",
            nombre="Ana",
            apellido="Perez",
            email="ana@example.com",
            roles="admin; ventas ;",
            activo="No",
        ),
        2,
    )

    assert user.roles == ["ADMIN", "VENTAS"]
    assert user.activo is False


@pytest.mark.parametrize("token", ["", "true", "1", "si", "sí", "SI"])
def test_user_active_truthy_tokens(token):
    processor = UserProcessor(InMemoryStore("username"))
    user = processor.map_row(
        row(username="ana", password="secret123", nombre="A", apellido="B", email="a@b.cl", activo=token),
        2,
    )
    assert user.activo is True


def test_user_without_roles_gets_default_role():
    processor = UserProcessor(InMemoryStore("username"))
    user = processor.map_row(
        row(username="ana", password="secret123", nombre="A", apellido="B", email="a@b.cl"), 2
    )
    assert user.roles == ["USER"]


def test_user_password_is_masked_for_validation():
    processor = UserProcessor(InMemoryStore("username"))
    user = processor.map_row(
        row(username="ana", password="abc", nombre="A", apellido="B", email="a@b.cl"), 2
    )

    serialized = processor.to_row(user)
    assert serialized["password"] == "***"
    assert "abc" not in repr(user)
    assert processor.validate(user, 2).errors == ("Password must be at least 6 characters",)


# ─── Persistence delegation ───────────────────────────────

@pytest.mark.asyncio
async def test_exists_and_save_delegate_to_store():
    store = InMemoryStore("rut", existing=("11111111-1",))
    processor = ClientProcessor(store)
    known = processor.map_row(row(rut="11111111-1", nombre="A", apellido="B", email="a@b.cl"), 2)
    fresh = processor.map_row(row(rut="12345678-5", nombre="C", apellido="D", email="c@d.cl"), 3)

    assert await processor.exists(known) is True
    assert await processor.exists(fresh) is False
    await processor.save(fresh)
    assert "12345678-5" in store.saved


@pytest.mark.asyncio
async def test_store_failures_surface_as_persistence_error():
    processor = ClientProcessor(InMemoryStore("rut", fail_keys=("12345678-5",)))
    client = processor.map_row(row(rut="12345678-5", nombre="A", apellido="B", email="a@b.cl"), 2)

    with pytest.raises(PersistenceError, match="disk full"):
        await processor.save(client)
