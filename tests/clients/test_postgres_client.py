"""Tests for PostgresClient against a live database."""

import pytest
from uuid import uuid4


class TestExecuteMethods:
    """Query execution methods."""

    def test_execute_returns_list_of_dicts(self, db):
        results = db.execute("SELECT 1 as num, 'hello' as word")
        assert results == [{"num": 1, "word": "hello"}]

    def test_execute_empty_returns_empty_list(self, db):
        assert db.execute("SELECT 1 WHERE false") == []

    def test_execute_single_returns_dict(self, db):
        assert db.execute_single("SELECT 42 as answer") == {"answer": 42}

    def test_execute_single_no_rows_returns_none(self, db):
        assert db.execute_single("SELECT 1 WHERE false") is None

    def test_execute_scalar_returns_value(self, db):
        assert db.execute_scalar("SELECT 'test'") == "test"

    def test_uuid_params_round_trip(self, db):
        value = uuid4()
        assert db.execute_scalar("SELECT %s::uuid", (value,)) == value


class TestTransaction:
    """transaction() commits or rolls back as a unit."""

    def _count(self, db, customer_id):
        return db.execute_scalar(
            "SELECT count(*) FROM wallet_accounts WHERE customer_id = %s", (customer_id,)
        )

    def _insert(self, cur, customer_id):
        cur.execute(
            """
            INSERT INTO wallet_accounts (customer_id, balance_cents, loyalty_points, version, created_at, updated_at)
            VALUES (%s, 0, 0, 0, now(), now())
            """,
            (customer_id,)
        )

    def test_commits_on_clean_exit(self, clean_db):
        with clean_db.transaction() as cur:
            self._insert(cur, "cust-commit")

        assert self._count(clean_db, "cust-commit") == 1

    def test_rolls_back_when_block_raises(self, clean_db):
        with pytest.raises(RuntimeError):
            with clean_db.transaction() as cur:
                self._insert(cur, "cust-raise")
                raise RuntimeError("abort")

        assert self._count(clean_db, "cust-raise") == 0

    def test_explicit_rollback(self, clean_db):
        with clean_db.transaction() as cur:
            self._insert(cur, "cust-rollback")
            cur.rollback()

        assert self._count(clean_db, "cust-rollback") == 0

    def test_rowcount_reports_updated_rows(self, clean_db):
        with clean_db.transaction() as cur:
            self._insert(cur, "cust-rows")
            cur.execute(
                "UPDATE wallet_accounts SET version = version + 1 WHERE customer_id = %s AND version = 5",
                ("cust-rows",)
            )
            assert cur.rowcount == 0
