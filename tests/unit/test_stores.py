"""Tests for contract metadata stores.

The same behaviour is checked against every backend: the embedded store,
the SQL store and the HTTP client talking to the storage API.
"""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest

from evmscan.core.config import Settings
from evmscan.core.exceptions import (
    AbiValidationError,
    InvalidAddressError,
    InvalidMetricKeyError,
    MetadataStoreError,
)
from evmscan.infrastructure.storage import (
    ApiMetadataStore,
    EmbeddedMetadataStore,
    SQLMetadataStore,
    create_metadata_store,
)
from evmscan.main import create_app
from evmscan.services.explorer import AbiCache

from fakes import ALICE, BOB, TOKEN, FakeChainClient

ERC20_ABI = [
    {
        "type": "function",
        "name": "transfer",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
    },
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    },
]

OTHER_ABI = [{"type": "function", "name": "foo", "inputs": [{"name": "x", "type": "uint256"}]}]

BACKENDS = ["embedded", "sql", "api"]


class StoreHarness:
    """Builds a store of the requested kind and tears it down."""

    def __init__(self, kind: str):
        self.kind = kind
        self._closers = []

    async def __aenter__(self):
        if self.kind == "embedded":
            store = EmbeddedMetadataStore()
        elif self.kind == "sql":
            store = SQLMetadataStore(database_url="sqlite+aiosqlite:///:memory:")
        else:
            backing = SQLMetadataStore(database_url="sqlite+aiosqlite:///:memory:")
            app = create_app(
                settings=Settings(_env_file=None, environment="testing"),
                chain_client=FakeChainClient(),
                storage_store=backing,
            )
            # ASGITransport does not run the lifespan
            app.state.storage_cache = AbiCache(backing)
            http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app))
            store = ApiMetadataStore("http://testserver/api/storage", client=http_client)
            self._closers.extend([http_client.aclose, backing.close])
        self._closers.append(store.close)
        return store

    async def __aexit__(self, *exc_info):
        for close in self._closers:
            await close()


@pytest.mark.parametrize("kind", BACKENDS)
class TestMetadataStoreContract:
    """Behaviour shared by every MetadataStore backend."""

    @pytest.mark.asyncio
    async def test_round_trip_normalizes_address(self, kind):
        """Test save then get returns the same ABI under a lowercase address."""
        async with StoreHarness(kind) as store:
            await store.save(TOKEN, ERC20_ABI, "Token")

            record = await store.get(TOKEN.lower())

        assert record is not None
        assert record.address == TOKEN.lower()
        assert record.abi == ERC20_ABI
        assert record.display_name == "Token"
        assert record.verified is True
        assert record.stored_at > 0

    @pytest.mark.asyncio
    async def test_get_any_casing(self, kind):
        """Test lookups ignore address casing."""
        async with StoreHarness(kind) as store:
            await store.save(TOKEN.lower(), ERC20_ABI)

            record = await store.get("0x" + TOKEN[2:].upper())

        assert record is not None
        assert record.display_name is None

    @pytest.mark.asyncio
    async def test_save_is_idempotent(self, kind):
        """Test saving the same ABI twice yields the same record."""
        async with StoreHarness(kind) as store:
            await store.save(TOKEN, ERC20_ABI, "Token")
            first = await store.get(TOKEN)
            await store.save(TOKEN, ERC20_ABI, "Token")
            second = await store.get(TOKEN)
            verified = await store.list_verified()

        assert first.model_dump(exclude={"stored_at"}) == second.model_dump(exclude={"stored_at"})
        assert len(verified) == 1

    @pytest.mark.asyncio
    async def test_save_overwrites(self, kind):
        """Test a re-save replaces the whole record."""
        async with StoreHarness(kind) as store:
            await store.save(TOKEN, ERC20_ABI, "Token")
            await store.save(TOKEN, OTHER_ABI)

            record = await store.get(TOKEN)

        assert record.abi == OTHER_ABI
        assert record.display_name is None

    @pytest.mark.asyncio
    async def test_unknown_address_is_none(self, kind):
        """Test missing metadata is not an error."""
        async with StoreHarness(kind) as store:
            assert await store.get(BOB) is None

    @pytest.mark.asyncio
    async def test_list_verified(self, kind):
        """Test every saved contract is listed."""
        async with StoreHarness(kind) as store:
            await store.save(TOKEN, ERC20_ABI, "Token")
            await store.save(ALICE, OTHER_ABI, "Foo")

            records = await store.list_verified()

        assert {r.address for r in records} == {TOKEN.lower(), ALICE.lower()}
        assert all(r.verified for r in records)

    @pytest.mark.asyncio
    async def test_clear(self, kind):
        """Test clear removes every record."""
        async with StoreHarness(kind) as store:
            await store.save(TOKEN, ERC20_ABI, "Token")
            await store.save(ALICE, OTHER_ABI)

            await store.clear()

            assert await store.get(TOKEN) is None
            assert await store.get(ALICE) is None
            assert await store.list_verified() == []

    @pytest.mark.asyncio
    async def test_malformed_abi_not_persisted(self, kind):
        """Test an invalid ABI is rejected and nothing is stored."""
        async with StoreHarness(kind) as store:
            with pytest.raises(AbiValidationError):
                await store.save(TOKEN, {"not": "an array"})
            with pytest.raises(AbiValidationError):
                await store.save(TOKEN, [{"type": "function", "inputs": []}])

            assert await store.get(TOKEN) is None

    @pytest.mark.asyncio
    async def test_invalid_address(self, kind):
        """Test malformed addresses are rejected."""
        async with StoreHarness(kind) as store:
            with pytest.raises(InvalidAddressError):
                await store.get("0x1234")
            with pytest.raises(InvalidAddressError):
                await store.save("not-an-address", ERC20_ABI)

    @pytest.mark.asyncio
    async def test_records_are_isolated_from_callers(self, kind):
        """Test mutating a saved ABI or a read record does not change the store."""
        abi = json.loads(json.dumps(ERC20_ABI))
        async with StoreHarness(kind) as store:
            await store.save(TOKEN, abi, "Token")
            abi[0]["inputs"].clear()
            abi.append({"type": "function", "name": "extra", "inputs": []})

            record = await store.get(TOKEN)
            record.abi[1]["inputs"][0]["name"] = "changed"
            record.display_name = "Changed"
            listed = await store.list_verified()
            listed[0].abi.clear()

            again = await store.get(TOKEN)

        assert again.abi == ERC20_ABI
        assert again.display_name == "Token"

    @pytest.mark.asyncio
    async def test_contract_source_round_trip(self, kind):
        """Test source metadata is stored per address like ABIs."""
        async with StoreHarness(kind) as store:
            assert await store.get_source(TOKEN) is None

            await store.save_source(
                TOKEN, source_code="contract T {}", compiler="v0.8.24", optimization=True, runs=200
            )
            record = await store.get_source("0x" + TOKEN[2:].upper())

        assert record.address == TOKEN.lower()
        assert record.source_code == "contract T {}"
        assert record.compiler == "v0.8.24"
        assert record.optimization is True
        assert record.runs == 200
        assert record.stored_at > 0

    @pytest.mark.asyncio
    async def test_contract_source_overwrites(self, kind):
        """Test a re-save replaces every source field."""
        async with StoreHarness(kind) as store:
            await store.save_source(TOKEN, source_code="v1", compiler="v0.8.0", runs=1)
            await store.save_source(TOKEN, source_code="v2")

            record = await store.get_source(TOKEN)

        assert record.source_code == "v2"
        assert record.compiler is None
        assert record.runs is None

    @pytest.mark.asyncio
    async def test_metric_round_trip(self, kind):
        """Test metrics hold arbitrary JSON and missing keys read as None."""
        value = {"tps": [1.5, 2.0], "blocks": 12, "label": None}
        async with StoreHarness(kind) as store:
            assert await store.get_metric("network.tps") is None

            await store.save_metric("network.tps", value)
            await store.save_metric("head", 42)
            await store.save_metric("head", 43)

            assert await store.get_metric("network.tps") == value
            assert await store.get_metric("head") == 43

    @pytest.mark.asyncio
    async def test_invalid_metric_key(self, kind):
        """Test keys that are not URL-safe are rejected."""
        async with StoreHarness(kind) as store:
            with pytest.raises(InvalidMetricKeyError):
                await store.save_metric("a/b", 1)
            with pytest.raises(InvalidMetricKeyError):
                await store.get_metric("")

    @pytest.mark.asyncio
    async def test_clear_removes_every_kind(self, kind):
        """Test clear wipes ABIs, contract sources and metrics together."""
        async with StoreHarness(kind) as store:
            await store.save(TOKEN, ERC20_ABI)
            await store.save_source(TOKEN, source_code="contract T {}")
            await store.save_metric("head", 5)

            await store.clear()

            assert await store.get(TOKEN) is None
            assert await store.get_source(TOKEN) is None
            assert await store.get_metric("head") is None

    @pytest.mark.asyncio
    async def test_concurrent_writes_apply_in_call_order(self, kind):
        """Test overlapping saves and a clear behave like the sequential calls."""
        async with StoreHarness(kind) as store:
            await asyncio.gather(
                *(store.save(TOKEN, ERC20_ABI, f"v{i}") for i in range(5)),
                store.save_metric("head", 1),
                store.clear(),
                store.save(ALICE, OTHER_ABI, "after"),
                store.save(ALICE, ERC20_ABI, "last"),
            )

            assert await store.get(TOKEN) is None
            assert await store.get_metric("head") is None
            record = await store.get(ALICE)
            verified = await store.list_verified()

        assert record.display_name == "last"
        assert record.abi == ERC20_ABI
        assert [r.address for r in verified] == [ALICE.lower()]


class TestEmbeddedMetadataStore:
    """Tests specific to the embedded store."""

    @pytest.mark.asyncio
    async def test_persists_to_file(self, tmp_path):
        """Test records survive a new store instance on the same file."""
        path = tmp_path / "contracts.json"
        await EmbeddedMetadataStore(path).save(TOKEN, ERC20_ABI, "Token")

        record = await EmbeddedMetadataStore(path).get(TOKEN)

        assert record.abi == ERC20_ABI
        assert record.display_name == "Token"
        stored = json.loads(path.read_text())
        assert stored["abis"][0]["name"] == "Token"
        assert "timestamp" in stored["abis"][0]

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, tmp_path):
        """Test an unreadable file surfaces as a store error."""
        path = tmp_path / "contracts.json"
        path.write_text("{broken")

        with pytest.raises(MetadataStoreError):
            await EmbeddedMetadataStore(path).get(TOKEN)

    @pytest.mark.asyncio
    async def test_clear_persists(self, tmp_path):
        """Test clearing empties the file too."""
        path = tmp_path / "contracts.json"
        store = EmbeddedMetadataStore(path)
        await store.save(TOKEN, ERC20_ABI)
        await store.clear()

        assert await EmbeddedMetadataStore(path).list_verified() == []

    @pytest.mark.asyncio
    async def test_sources_and_metrics_persist(self, tmp_path):
        """Test every record kind survives a new store instance."""
        path = tmp_path / "contracts.json"
        store = EmbeddedMetadataStore(path)
        await store.save_source(TOKEN, source_code="contract T {}", compiler="v0.8.24")
        await store.save_metric("head", {"number": 5})

        reopened = EmbeddedMetadataStore(path)

        assert (await reopened.get_source(TOKEN)).compiler == "v0.8.24"
        assert await reopened.get_metric("head") == {"number": 5}

    @pytest.mark.asyncio
    async def test_failed_save_leaves_store_unchanged(self, tmp_path):
        """Test a write that cannot reach the file is not visible afterwards."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        store = EmbeddedMetadataStore(blocker / "contracts.json")

        with pytest.raises(MetadataStoreError):
            await store.save(TOKEN, ERC20_ABI)
        with pytest.raises(MetadataStoreError):
            await store.save_metric("head", 1)

        assert await store.get(TOKEN) is None
        assert await store.get_metric("head") is None
        assert await store.list_verified() == []

    @pytest.mark.asyncio
    async def test_failed_clear_keeps_records(self, tmp_path):
        """Test records stay readable when clearing cannot be persisted."""
        path = tmp_path / "contracts.json"
        store = EmbeddedMetadataStore(path)
        await store.save(TOKEN, ERC20_ABI, "Token")

        with patch(
            "evmscan.infrastructure.storage.embedded.os.replace",
            side_effect=OSError("disk full"),
        ):
            with pytest.raises(MetadataStoreError, match="disk full"):
                await store.clear()
            with pytest.raises(MetadataStoreError):
                await store.save(ALICE, OTHER_ABI)

        assert (await store.get(TOKEN)).display_name == "Token"
        assert await store.get(ALICE) is None
        assert (await EmbeddedMetadataStore(path).get(TOKEN)).display_name == "Token"

    @pytest.mark.asyncio
    async def test_writes_never_overlap(self):
        """Test concurrent save, save_source, save_metric and clear run one at a time."""
        active = 0
        overlaps = []

        class SlowStore(EmbeddedMetadataStore):
            def _commit(self, **changes):
                overlaps.append(active)
                super()._commit(**changes)

            async def _guarded(self, write, *args):
                nonlocal active
                active += 1
                await asyncio.sleep(0.01)
                try:
                    await write(*args)
                finally:
                    active -= 1

            async def _write(self, record):
                await self._guarded(super()._write, record)

            async def _write_source(self, record):
                await self._guarded(super()._write_source, record)

            async def _write_metric(self, key, data):
                await self._guarded(super()._write_metric, key, data)

            async def _delete_all(self):
                await self._guarded(super()._delete_all)

        store = SlowStore()
        await asyncio.gather(
            store.save(TOKEN, ERC20_ABI),
            store.save_source(TOKEN, source_code="contract T {}"),
            store.save_metric("head", 1),
            store.clear(),
            store.save(ALICE, OTHER_ABI),
        )

        assert overlaps == [1] * 5
        assert await store.get(TOKEN) is None
        assert await store.get(ALICE) is not None


class TestSQLMetadataStore:
    """Tests specific to the SQL store."""

    @pytest.mark.asyncio
    async def test_shared_file_database(self, tmp_path):
        """Test two stores on one database see each other's writes."""
        url = f"sqlite+aiosqlite:///{tmp_path / 'evmscan.db'}"
        writer = SQLMetadataStore(database_url=url)
        reader = SQLMetadataStore(database_url=url)
        try:
            await writer.save(TOKEN, ERC20_ABI, "Token")
            record = await reader.get(TOKEN)
        finally:
            await writer.close()
            await reader.close()

        assert record.display_name == "Token"

    @pytest.mark.asyncio
    async def test_reset_on_start(self, tmp_path):
        """Test reset drops existing records on initialize."""
        url = f"sqlite+aiosqlite:///{tmp_path / 'evmscan.db'}"
        first = SQLMetadataStore(database_url=url)
        try:
            await first.save(TOKEN, ERC20_ABI)
        finally:
            await first.close()

        second = SQLMetadataStore(database_url=url, reset=True)
        try:
            await second.initialize()
            assert await second.get(TOKEN) is None
        finally:
            await second.close()

    def test_requires_url_or_engine(self):
        """Test construction without a database is rejected."""
        with pytest.raises(ValueError):
            SQLMetadataStore()


class TestApiMetadataStore:
    """Tests specific to the HTTP-backed store."""

    @pytest.mark.asyncio
    async def test_server_error_raises_store_error(self):
        """Test non-404 failures surface as MetadataStoreError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "Failed to load ABI"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        store = ApiMetadataStore("http://storage/api/storage", client=client)
        try:
            with pytest.raises(MetadataStoreError, match="Failed to load ABI"):
                await store.get(TOKEN)
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_requests_use_lowercase_address(self):
        """Test the address in the URL is normalized."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(404, json={"error": "ABI not found"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        store = ApiMetadataStore("http://storage/api/storage/", client=client)
        try:
            assert await store.get(TOKEN) is None
        finally:
            await client.aclose()

        assert seen == [f"/api/storage/abis/{TOKEN.lower()}"]

    @pytest.mark.asyncio
    async def test_transport_error_raises_store_error(self):
        """Test connection failures surface as MetadataStoreError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        store = ApiMetadataStore("http://storage/api/storage", client=client)
        try:
            with pytest.raises(MetadataStoreError):
                await store.list_verified()
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_bad_request_maps_to_route_error(self):
        """Test a 400 from the contract route is an address error, not an ABI error."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "Invalid address: '0x12'"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        store = ApiMetadataStore("http://storage/api/storage", client=client)
        try:
            with pytest.raises(InvalidAddressError, match="Invalid address"):
                await store.save_source(TOKEN, source_code="contract T {}")
            with pytest.raises(AbiValidationError):
                await store.save(TOKEN, ERC20_ABI)
        finally:
            await client.aclose()


class TestCreateMetadataStore:
    """Tests for backend selection."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "mode,expected",
        [
            ("embedded", EmbeddedMetadataStore),
            ("sql", SQLMetadataStore),
            ("api", ApiMetadataStore),
        ],
    )
    async def test_mode_selects_backend(self, mode, expected):
        """Test storage_mode picks the store class."""
        settings = Settings(
            _env_file=None,
            storage_mode=mode,
            database_url="sqlite+aiosqlite:///:memory:",
        )

        store = await create_metadata_store(settings)
        try:
            assert isinstance(store, expected)
        finally:
            await store.close()
