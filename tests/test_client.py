"""Tests for the caching behaviour of JsonRpcClient."""
import asyncio
import json
import os

import pytest

from forkrpc.client import JsonRpcClient
from forkrpc.errors import InvalidResponseError, ProviderError
from forkrpc.types import AccountData, RpcBlock, RpcBlockWithTransactions, RpcTransaction
from tests.mock_transport import (
    ADDRESS,
    DAI_ADDRESS,
    DAI_TOTAL_SUPPLY_STORAGE_POSITION,
    STORAGE_RESPONSE_1,
    STORAGE_RESPONSE_2,
    TOPIC,
    MockTransport,
    make_raw_block,
    make_raw_log,
    make_raw_receipt,
    make_raw_transaction,
)

NETWORK_ID = 1
LATEST_BLOCK = 123
MAX_REORG = 3


@pytest.fixture
def transport():
    return MockTransport(request_result=STORAGE_RESPONSE_1)


@pytest.fixture
def client(transport):
    """Client created at block 123 with a max reorg of 3, memory only."""
    return JsonRpcClient(transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG)


def get_storage_at(client, block_number):
    return asyncio.run(
        client.get_storage_at(DAI_ADDRESS, DAI_TOTAL_SUPPLY_STORAGE_POSITION, block_number)
    )


def test_network_id(client):
    assert client.network_id == NETWORK_ID
    assert client.get_network_id() == NETWORK_ID


def test_does_not_cache_blocks_that_can_be_reorged_out(client, transport):
    value = get_storage_at(client, 121)
    get_storage_at(client, 121)

    assert transport.request.await_count == 2
    assert value == bytes.fromhex(STORAGE_RESPONSE_1[2:])


def test_caches_fetched_data_when_safe(client, transport):
    value = get_storage_at(client, 120)
    second = get_storage_at(client, 120)

    assert transport.request.await_count == 1
    assert value == second == bytes.fromhex(STORAGE_RESPONSE_1[2:])


def test_request_params(client, transport):
    get_storage_at(client, 120)

    transport.request.assert_awaited_once_with(
        "eth_getStorageAt",
        ["0x" + DAI_ADDRESS.hex(), "0x" + DAI_TOTAL_SUPPLY_STORAGE_POSITION.hex(), "0x78"],
    )


def test_is_parameter_aware(client, transport):
    transport.request.side_effect = [STORAGE_RESPONSE_1, STORAGE_RESPONSE_2]

    first_110 = get_storage_at(client, 110)
    first_120 = get_storage_at(client, 120)
    second_120 = get_storage_at(client, 120)
    second_110 = get_storage_at(client, 110)

    assert transport.request.await_count == 2
    assert first_110 == second_110 == bytes.fromhex(STORAGE_RESPONSE_1[2:])
    assert first_120 == second_120 == bytes.fromhex(STORAGE_RESPONSE_2[2:])


def test_clients_do_not_share_memory_cache(transport):
    client1 = JsonRpcClient(transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG)
    client2 = JsonRpcClient(transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG)

    get_storage_at(client1, 120)
    get_storage_at(client2, 120)

    assert transport.request.await_count == 2


def test_concurrent_identical_requests(client, transport):
    async def fetch_many():
        return await asyncio.gather(*(
            client.get_storage_at(DAI_ADDRESS, DAI_TOTAL_SUPPLY_STORAGE_POSITION, 120)
            for _ in range(5)
        ))

    results = asyncio.run(fetch_many())

    assert len(set(results)) == 1
    assert len(client.cache) == 1


class TestDiskCaching:

    @pytest.fixture
    def disk_client(self, transport, tmp_path):
        return JsonRpcClient(transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG, tmp_path)

    def make_call(self, client, transport):
        value = get_storage_at(client, 120)
        get_storage_at(client, 120)

        assert transport.request.await_count == 1
        assert value == bytes.fromhex(STORAGE_RESPONSE_1[2:])
        return value

    def test_stores_to_disk_after_a_request(self, disk_client, transport, tmp_path):
        self.make_call(disk_client, transport)

        assert os.listdir(tmp_path) == ["network-1"]
        entries = os.listdir(tmp_path / "network-1")
        assert len(entries) == 1

        # The raw payload is persisted, not the decoded value
        with open(tmp_path / "network-1" / entries[0], encoding="utf-8") as f:
            assert json.load(f) == STORAGE_RESPONSE_1

    def test_reads_from_disk_without_a_request(self, disk_client, transport, tmp_path):
        first = self.make_call(disk_client, transport)

        new_client = JsonRpcClient(transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG, tmp_path)
        second = self.make_call(new_client, transport)

        assert first == second

    def test_disk_is_scoped_by_network(self, disk_client, transport, tmp_path):
        self.make_call(disk_client, transport)

        other_network = JsonRpcClient(transport, 5, LATEST_BLOCK, MAX_REORG, tmp_path)
        get_storage_at(other_network, 120)

        assert transport.request.await_count == 2

    def test_unsafe_responses_are_not_persisted(self, disk_client, tmp_path):
        get_storage_at(disk_client, 121)

        assert not os.path.exists(tmp_path / "network-1")

    def test_corrupt_disk_payload_is_fatal(self, disk_client, transport, tmp_path):
        self.make_call(disk_client, transport)
        entry = tmp_path / "network-1" / os.listdir(tmp_path / "network-1")[0]
        entry.write_text(json.dumps("0xnot-hex"), encoding="utf-8")

        new_client = JsonRpcClient(transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG, tmp_path)
        with pytest.raises(InvalidResponseError):
            get_storage_at(new_client, 120)

    def test_unreadable_disk_entry_falls_back_to_transport(self, disk_client, transport, tmp_path):
        self.make_call(disk_client, transport)
        entry = tmp_path / "network-1" / os.listdir(tmp_path / "network-1")[0]
        entry.write_text("{truncated", encoding="utf-8")

        new_client = JsonRpcClient(transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG, tmp_path)
        value = get_storage_at(new_client, 120)

        assert transport.request.await_count == 2
        assert value == bytes.fromhex(STORAGE_RESPONSE_1[2:])

    def test_disk_write_failure_still_returns_value(self, transport, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        client = JsonRpcClient(transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG, blocker)

        value = get_storage_at(client, 120)
        get_storage_at(client, 120)

        assert value == bytes.fromhex(STORAGE_RESPONSE_1[2:])
        assert transport.request.await_count == 1


def test_decode_failure_propagates_and_is_not_cached(client, transport):
    transport.request.return_value = "0xzz"

    with pytest.raises(InvalidResponseError):
        get_storage_at(client, 100)
    with pytest.raises(InvalidResponseError):
        get_storage_at(client, 100)

    assert transport.request.await_count == 2
    assert len(client.cache) == 0


def test_transport_failure_propagates_and_is_not_cached(client, transport):
    transport.request.side_effect = [ProviderError("boom"), STORAGE_RESPONSE_1]

    with pytest.raises(ProviderError, match="boom"):
        get_storage_at(client, 100)

    assert get_storage_at(client, 100) == bytes.fromhex(STORAGE_RESPONSE_1[2:])
    assert transport.request.await_count == 2


class TestBlocks:

    def test_get_block_by_number(self, client, transport):
        transport.request.return_value = make_raw_block(100)

        block = asyncio.run(client.get_block_by_number(100))
        again = asyncio.run(client.get_block_by_number(100))

        assert isinstance(block, RpcBlock)
        assert block.number == 100
        assert block.transactions == (bytes.fromhex("33" * 32),)
        assert block == again
        transport.request.assert_awaited_once_with("eth_getBlockByNumber", ["0x64", False])

    def test_get_block_by_number_with_transactions(self, client, transport):
        transport.request.return_value = make_raw_block(100, with_transactions=True)

        block = asyncio.run(client.get_block_by_number(100, include_transactions=True))

        assert isinstance(block, RpcBlockWithTransactions)
        assert all(isinstance(tx, RpcTransaction) for tx in block.transactions)
        transport.request.assert_awaited_once_with("eth_getBlockByNumber", ["0x64", True])

    def test_with_and_without_transactions_are_cached_separately(self, client, transport):
        transport.request.side_effect = [
            make_raw_block(100),
            make_raw_block(100, with_transactions=True),
        ]

        hashes_only = asyncio.run(client.get_block_by_number(100))
        full = asyncio.run(client.get_block_by_number(100, include_transactions=True))

        assert isinstance(hashes_only, RpcBlock)
        assert isinstance(full, RpcBlockWithTransactions)
        assert transport.request.await_count == 2

    def test_recent_block_is_not_cached(self, client, transport):
        transport.request.return_value = make_raw_block(122)

        asyncio.run(client.get_block_by_number(122))
        asyncio.run(client.get_block_by_number(122))

        assert transport.request.await_count == 2

    def test_get_block_by_hash(self, client, transport):
        transport.request.return_value = make_raw_block(100)
        block_hash = bytes.fromhex("11" * 32)

        block = asyncio.run(client.get_block_by_hash(block_hash))
        asyncio.run(client.get_block_by_hash(block_hash))

        assert block.hash == block_hash
        transport.request.assert_awaited_once_with("eth_getBlockByHash", ["0x" + "11" * 32, False])

    def test_nonexistent_block_returns_none_and_is_not_cached(self, client, transport):
        transport.request.return_value = None

        assert asyncio.run(client.get_block_by_hash(bytes(32), True)) is None
        assert asyncio.run(client.get_block_by_hash(bytes(32), True)) is None
        assert asyncio.run(client.get_block_by_number(1000)) is None

        assert transport.request.await_count == 3
        assert len(client.cache) == 0


class TestTransactions:

    def test_get_transaction_by_hash(self, client, transport):
        transport.request.return_value = make_raw_transaction(100)
        tx_hash = bytes.fromhex("33" * 32)

        tx = asyncio.run(client.get_transaction_by_hash(tx_hash))
        asyncio.run(client.get_transaction_by_hash(tx_hash))

        assert tx.block_number == 100
        assert tx.from_ == bytes.fromhex(ADDRESS[2:])
        assert tx.value == 10 ** 18
        assert transport.request.await_count == 1

    def test_pending_transaction_is_not_cached(self, client, transport):
        transport.request.return_value = make_raw_transaction(None)

        tx = asyncio.run(client.get_transaction_by_hash(bytes(32)))
        asyncio.run(client.get_transaction_by_hash(bytes(32)))

        assert tx.block_number is None
        assert transport.request.await_count == 2

    def test_nonexistent_transaction_returns_none(self, client, transport):
        transport.request.return_value = None

        assert asyncio.run(client.get_transaction_by_hash(bytes(32))) is None
        assert asyncio.run(client.get_transaction_receipt(bytes(32))) is None
        assert len(client.cache) == 0

    def test_get_transaction_receipt(self, client, transport):
        transport.request.return_value = make_raw_receipt(100)

        receipt = asyncio.run(client.get_transaction_receipt(bytes(32)))
        asyncio.run(client.get_transaction_receipt(bytes(32)))

        assert receipt.block_number == 100
        assert receipt.status == 1
        assert receipt.contract_address is None
        assert len(receipt.logs) == 1
        assert transport.request.await_count == 1


class TestLogs:

    def test_get_logs_filter(self, client, transport):
        transport.request.return_value = [make_raw_log(100)]
        address = bytes.fromhex(ADDRESS[2:])
        topic = bytes.fromhex(TOPIC[2:])

        logs = asyncio.run(client.get_logs(90, 100, address=address, topics=[[topic, None], None]))

        assert len(logs) == 1
        assert logs[0].topics == (topic,)
        transport.request.assert_awaited_once_with("eth_getLogs", [{
            "fromBlock": "0x5a",
            "toBlock": "0x64",
            "address": ADDRESS,
            "topics": [[TOPIC, None], None],
        }])

    def test_get_logs_omits_unset_filters(self, client, transport):
        transport.request.return_value = []

        asyncio.run(client.get_logs(90, 100, address=[bytes(20), bytes(20)]))

        transport.request.assert_awaited_once_with("eth_getLogs", [{
            "fromBlock": "0x5a",
            "toBlock": "0x64",
            "address": ["0x" + "00" * 20, "0x" + "00" * 20],
        }])

    def test_empty_logs_are_cached(self, client, transport):
        transport.request.return_value = []

        assert asyncio.run(client.get_logs(90, 100)) == ()
        assert asyncio.run(client.get_logs(90, 100)) == ()
        assert transport.request.await_count == 1

    def test_cached_logs_cannot_be_modified(self, client, transport):
        transport.request.return_value = [make_raw_log(100)]

        logs = asyncio.run(client.get_logs(90, 100))
        with pytest.raises(AttributeError):
            logs.clear()
        with pytest.raises(TypeError):
            logs[0].topics[0] = b""

        again = asyncio.run(client.get_logs(90, 100))
        assert len(again) == 1
        assert again[0].topics == (bytes.fromhex(TOPIC[2:]),)
        assert transport.request.await_count == 1

    def test_range_reaching_reorg_window_is_not_cached(self, client, transport):
        """Logs are only stable once the upper bound is out of the reorg window."""
        transport.request.return_value = [make_raw_log(100)]

        asyncio.run(client.get_logs(100, 121))
        asyncio.run(client.get_logs(100, 121))

        assert transport.request.await_count == 2


class TestAccountData:

    @pytest.fixture
    def batch_transport(self):
        return MockTransport(batch_result=["0x6080", "0x2", "0xde0b6b3a7640000"])

    def test_get_account_data(self, batch_transport):
        client = JsonRpcClient(batch_transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG)

        account = asyncio.run(client.get_account_data(bytes.fromhex(ADDRESS[2:]), 120))

        assert account == AccountData(code=bytes.fromhex("6080"), transaction_count=2, balance=10 ** 18)
        requests = batch_transport.send_batch.await_args.args[0]
        assert [r.method for r in requests] == ["eth_getCode", "eth_getTransactionCount", "eth_getBalance"]
        assert all(r.params == (ADDRESS, "0x78") for r in requests)

    def test_batch_is_cached_atomically(self, batch_transport):
        client = JsonRpcClient(batch_transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG)

        first = asyncio.run(client.get_account_data(bytes(20), 120))
        second = asyncio.run(client.get_account_data(bytes(20), 120))

        assert first == second
        assert batch_transport.send_batch.await_count == 1
        assert batch_transport.request.await_count == 0
        assert len(client.cache) == 1

    def test_batch_in_reorg_window_is_never_cached(self, batch_transport):
        client = JsonRpcClient(batch_transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG)

        asyncio.run(client.get_account_data(bytes(20), 121))
        asyncio.run(client.get_account_data(bytes(20), 121))

        assert batch_transport.send_batch.await_count == 2
        assert len(client.cache) == 0

    def test_batch_disk_round_trip(self, batch_transport, tmp_path):
        client = JsonRpcClient(batch_transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG, tmp_path)
        first = asyncio.run(client.get_account_data(bytes(20), 120))

        new_client = JsonRpcClient(batch_transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG, tmp_path)
        second = asyncio.run(new_client.get_account_data(bytes(20), 120))

        assert first == second
        assert batch_transport.send_batch.await_count == 1

    def test_batch_member_decode_failure(self, batch_transport):
        batch_transport.send_batch.return_value = ["0x6080", "0x02", "0x1"]
        client = JsonRpcClient(batch_transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG)

        # "0x02" has a leading zero, which is not a valid quantity
        with pytest.raises(InvalidResponseError):
            asyncio.run(client.get_account_data(bytes(20), 100))
        assert len(client.cache) == 0

    def test_batch_with_wrong_length_is_rejected(self, batch_transport):
        batch_transport.send_batch.return_value = ["0x6080", "0x2"]
        client = JsonRpcClient(batch_transport, NETWORK_ID, LATEST_BLOCK, MAX_REORG)

        with pytest.raises(InvalidResponseError):
            asyncio.run(client.get_account_data(bytes(20), 100))
