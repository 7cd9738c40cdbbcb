import pytest
import threading
from concurrent.futures import ThreadPoolExecutor

from errors import InsufficientFundsError, InvalidAmountError
from ledger import Ledger


@pytest.fixture
def ledger():
    return Ledger({"alice": 100, "bob": 50})


class TestGetBalance:
    """Test balance reads."""

    def test_seeded_account(self, ledger):
        assert ledger.get_balance("alice") == (100.0, True)

    def test_unknown_account_not_found(self, ledger):
        balance, found = ledger.get_balance("carol")

        assert found is False
        assert balance == 0.0

    def test_read_does_not_create_account(self, ledger):
        ledger.get_balance("carol")

        assert "carol" not in ledger.snapshot()

    def test_independent_instances(self):
        first = Ledger({"alice": 100})
        second = Ledger({"alice": 100})

        first.transfer("alice", "bob", 40)

        assert first.get_balance("alice") == (60.0, True)
        assert second.get_balance("alice") == (100.0, True)


class TestTransfer:
    """Test the transfer rules."""

    def test_transfer_between_existing_accounts(self, ledger):
        ledger.transfer("alice", "bob", 30)

        assert ledger.get_balance("alice") == (70.0, True)
        assert ledger.get_balance("bob") == (80.0, True)

    def test_transfer_creates_destination(self):
        ledger = Ledger({"alice": 100})

        ledger.transfer("alice", "bob", 30)

        assert ledger.get_balance("bob") == (30.0, True)
        assert ledger.get_balance("alice") == (70.0, True)

    def test_transfer_entire_balance(self, ledger):
        ledger.transfer("bob", "alice", 50)

        assert ledger.get_balance("bob") == (0.0, True)
        assert ledger.get_balance("alice") == (150.0, True)

    def test_insufficient_funds(self):
        ledger = Ledger({"alice": 10})

        with pytest.raises(InsufficientFundsError) as exc_info:
            ledger.transfer("alice", "bob", 50)

        assert exc_info.value.available == 10.0
        assert exc_info.value.requested == 50
        assert ledger.get_balance("alice") == (10.0, True)
        assert ledger.get_balance("bob") == (0.0, False)

    def test_absent_source_has_no_funds(self, ledger):
        with pytest.raises(InsufficientFundsError):
            ledger.transfer("carol", "alice", 1)

        assert "carol" not in ledger.snapshot()
        assert ledger.get_balance("alice") == (100.0, True)

    @pytest.mark.parametrize("amount", [0, -5, -0.01, float("nan")])
    def test_invalid_amount(self, ledger, amount):
        before = ledger.snapshot()

        with pytest.raises(InvalidAmountError):
            ledger.transfer("alice", "bob", amount)

        assert ledger.snapshot() == before

    def test_invalid_amount_checked_before_funds(self):
        ledger = Ledger({})

        with pytest.raises(InvalidAmountError):
            ledger.transfer("nobody", "bob", -5)

    def test_self_transfer_is_noop(self, ledger):
        ledger.transfer("alice", "alice", 40)

        assert ledger.get_balance("alice") == (100.0, True)

    def test_self_transfer_with_fractional_amount(self):
        ledger = Ledger({"alice": 0.3})

        ledger.transfer("alice", "alice", 0.1)

        assert ledger.get_balance("alice") == (0.3, True)

    def test_self_transfer_still_checks_funds(self, ledger):
        with pytest.raises(InsufficientFundsError):
            ledger.transfer("bob", "bob", 51)

        assert ledger.get_balance("bob") == (50.0, True)


class TestInvariants:
    """Test conservation and atomicity."""

    def test_conservation_over_sequence(self, ledger):
        total = ledger.total_balance()
        moves = [
            ("alice", "bob", 20),
            ("bob", "carol", 60),
            ("carol", "alice", 10),
            ("alice", "alice", 5),
            ("carol", "dave", 50),
        ]

        for source, destination, amount in moves:
            ledger.transfer(source, destination, amount)

        assert ledger.total_balance() == total
        assert ledger.snapshot() == {"alice": 90.0, "bob": 10.0, "carol": 0.0, "dave": 50.0}

    def test_concurrent_transfers_no_lost_updates(self):
        ledger = Ledger({"alice": 1000, "bob": 1000})
        barrier = threading.Barrier(8)

        def worker(index):
            barrier.wait()
            source, destination = ("alice", "bob") if index % 2 else ("bob", "alice")
            for _ in range(250):
                ledger.transfer(source, destination, 1)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(worker, range(8)))

        # Four workers move 250 each way
        assert ledger.get_balance("alice") == (1000.0, True)
        assert ledger.get_balance("bob") == (1000.0, True)

    def test_concurrent_overdraw_attempts(self):
        ledger = Ledger({"alice": 500})
        barrier = threading.Barrier(10)

        def worker(index):
            barrier.wait()
            try:
                ledger.transfer("alice", f"dest_{index}", 200)
                return True
            except InsufficientFundsError:
                return False

        with ThreadPoolExecutor(max_workers=10) as pool:
            results = list(pool.map(worker, range(10)))

        assert results.count(True) == 2
        assert results.count(False) == 8
        assert ledger.get_balance("alice") == (100.0, True)
        assert ledger.total_balance() == 500.0

    def test_reads_never_see_partial_transfer(self):
        ledger = Ledger({"alice": 100, "bob": 0})
        stop = threading.Event()
        torn = []

        def shuttle():
            for _ in range(2000):
                ledger.transfer("alice", "bob", 100)
                ledger.transfer("bob", "alice", 100)
            stop.set()

        def observe():
            while not stop.is_set():
                snapshot = ledger.snapshot()
                if snapshot["alice"] + snapshot["bob"] != 100:
                    torn.append(snapshot)

        reader = threading.Thread(target=observe)
        reader.start()
        shuttle()
        reader.join()

        assert torn == []
