"""Tests for batches and the Operations facade."""
import pytest

from mcp_app_server.management import (
    Address,
    Batch,
    InMemoryManagementClient,
    ModelNodeResult,
    Operations,
    OperationException,
    Values,
    VERSION_3_0_0,
)

CONTAINER = Address.subsystem("infinispan").and_("cache-container", "web")


@pytest.fixture
def client():
    return InMemoryManagementClient(resources={CONTAINER: {}})


@pytest.fixture
def ops(client):
    return Operations(client)


class TestBatch:
    """Tests for batch construction."""

    def test_steps_keep_insertion_order(self):
        first = CONTAINER.and_("local-cache", "a")
        batch = (Batch()
                 .add(first, Values.of("module", "org.foo"))
                 .write_attribute(first, "statistics-enabled", True)
                 .remove(CONTAINER.and_("local-cache", "b")))
        model = batch.to_model()
        assert model["operation"] == "composite"
        assert model["address"] == []
        assert [s["operation"] for s in model["steps"]] == ["add", "write-attribute", "remove"]
        assert model["steps"][0]["module"] == "org.foo"
        assert model["steps"][1] == {
            "operation": "write-attribute",
            "address": [{"subsystem": "infinispan"}, {"cache-container": "web"}, {"local-cache": "a"}],
            "name": "statistics-enabled",
            "value": True,
        }

    def test_reserved_attribute_name_rejected(self):
        batch = Batch().add(CONTAINER.and_("local-cache", "a"), Values.of("operation", "x"))
        with pytest.raises(ValueError):
            batch.to_model()

    def test_empty(self):
        assert Batch().is_empty
        assert len(Batch()) == 0


class TestModelNodeResult:
    """Tests for response wrapping."""

    def test_failed_step(self):
        result = ModelNodeResult({
            "outcome": "failed",
            "result": {
                "step-1": {"outcome": "success"},
                "step-2": {"outcome": "failed", "failure-description": "Duplicate resource"},
            },
        })
        assert result.failed_step() == (2, "Duplicate resource")

    def test_typed_accessors(self):
        assert ModelNodeResult.success("true").bool_value() is True
        assert ModelNodeResult.success("42").int_value() == 42
        assert ModelNodeResult.success(None).string_value("x") == "x"
        assert ModelNodeResult.success(["a"]).list_value() == ["a"]

    def test_assert_success(self):
        with pytest.raises(AssertionError, match="boom"):
            ModelNodeResult.failure("boom").assert_success()
        assert ModelNodeResult.success().assert_success().is_success


class TestOperations:
    """Tests for single operations against the in-memory model."""

    @pytest.mark.asyncio
    async def test_add_and_read(self, client, ops):
        cache = CONTAINER.and_("local-cache", "c1")
        await ops.add(cache, Values.of("module", "org.foo"))
        result = await ops.read_attribute(cache, "module")
        assert result.string_value() == "org.foo"

    @pytest.mark.asyncio
    async def test_duplicate_add_fails_without_change(self, client, ops):
        """Adding an existing resource fails and keeps its attributes."""
        cache = CONTAINER.and_("local-cache", "c1")
        await ops.add(cache, Values.of("module", "org.foo"))
        with pytest.raises(OperationException) as exc:
            await ops.add(cache, Values.of("module", "org.bar"))
        assert exc.value.address == cache
        assert exc.value.operation == "add"
        assert "Duplicate resource" in exc.value.description
        assert client.attributes(cache) == {"module": "org.foo"}

    @pytest.mark.asyncio
    async def test_exists(self, ops):
        assert await ops.exists(CONTAINER)
        assert not await ops.exists(CONTAINER.and_("local-cache", "missing"))
        # Missing parent means missing
        assert not await ops.exists(Address.subsystem("nope").and_("x", "y"))

    @pytest.mark.asyncio
    async def test_remove_if_exists_absent(self, client, ops):
        """Removing an absent resource is a no-op."""
        cache = CONTAINER.and_("local-cache", "missing")
        assert await ops.remove_if_exists(cache) is False
        assert not any(op["operation"] == "remove" for op in client.operations_executed)

    @pytest.mark.asyncio
    async def test_remove_if_exists_present(self, client, ops):
        cache = CONTAINER.and_("local-cache", "c1")
        client.seed(cache)
        assert await ops.remove_if_exists(cache) is True
        assert not client.has_resource(cache)

    @pytest.mark.asyncio
    async def test_write_and_undefine_attribute(self, client, ops):
        await ops.write_attribute(CONTAINER, "default-cache", "c1")
        assert client.attributes(CONTAINER)["default-cache"] == "c1"
        await ops.undefine_attribute(CONTAINER, "default-cache")
        assert "default-cache" not in client.attributes(CONTAINER)

    @pytest.mark.asyncio
    async def test_read_children_names(self, client, ops):
        client.seed(CONTAINER.and_("local-cache", "b"))
        client.seed(CONTAINER.and_("local-cache", "a"))
        result = await ops.read_children_names(CONTAINER, "local-cache")
        assert result.list_value() == ["a", "b"]

    @pytest.mark.asyncio
    async def test_read_missing_does_not_raise(self, ops):
        result = await ops.read_resource(CONTAINER.and_("local-cache", "missing"))
        assert result.is_failed
        assert "not found" in result.failure_description

    @pytest.mark.asyncio
    async def test_version(self):
        client = InMemoryManagementClient(version=VERSION_3_0_0)
        assert await client.version() == VERSION_3_0_0


class TestBatchExecution:
    """Tests for atomic batch submission."""

    @pytest.mark.asyncio
    async def test_empty_batch_no_round_trip(self, client, ops):
        assert await ops.batch(Batch()) is None
        assert client.operations_executed == []

    @pytest.mark.asyncio
    async def test_batch_success(self, client, ops):
        batch = (Batch()
                 .add(CONTAINER.and_("local-cache", "a"))
                 .add(CONTAINER.and_("local-cache", "b")))
        result = await ops.batch(batch)
        assert result.is_success
        assert client.has_resource(CONTAINER.and_("local-cache", "a"))
        assert client.has_resource(CONTAINER.and_("local-cache", "b"))

    @pytest.mark.asyncio
    async def test_batch_is_atomic(self, client, ops):
        """A failing step leaves no partial effect and names the step."""
        existing = CONTAINER.and_("local-cache", "existing")
        client.seed(existing)
        batch = (Batch()
                 .add(CONTAINER.and_("local-cache", "new"))
                 .add(existing))

        with pytest.raises(OperationException) as exc:
            await ops.batch(batch)

        assert exc.value.failed_step == 2
        assert exc.value.address == existing
        assert exc.value.operation == "add"
        assert not client.has_resource(CONTAINER.and_("local-cache", "new"))

    @pytest.mark.asyncio
    async def test_later_step_sees_earlier_step(self, client, ops):
        container = Address.subsystem("infinispan").and_("cache-container", "new")
        batch = Batch().add(container).add(container.and_("local-cache", "a"))
        await ops.batch(batch)
        assert client.has_resource(container.and_("local-cache", "a"))
