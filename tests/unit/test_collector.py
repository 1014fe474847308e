"""
Unit tests for the evidence collector.

Uses in-memory fake adapters that count their calls, so ordering,
early exit and failure isolation can be asserted directly.
"""

import asyncio
import time
from datetime import timedelta
from unittest.mock import patch

import pytest

from investigator.adapters.auth import TokenProvider
from investigator.adapters.base import (
    DeletedAccountRecord,
    DirectoryAdapter,
    MailboxAdapter,
    MailboxRecord,
    MailboxStatistics,
    SiteRecord,
    StorageAdapter,
)
from investigator.adapters.graph_directory import GraphDirectoryAdapter
from investigator.constants import StorageTenant
from investigator.errors import AdapterError, AdapterTimeoutError, InputError
from investigator.models import Decision, FindingSource, FindingStatus, SourceKind
from investigator.services.collector import EvidenceCollector
from investigator.services.recommendation import recommend

T1 = StorageTenant(name="t1", tenant_id="t1-id", admin_url="https://t1-admin.example", my_site_host="t1-my.example")
T2 = StorageTenant(name="t2", tenant_id="t2-id", admin_url="https://t2-admin.example", my_site_host="t2-my.example")


# -----------------------------------------------------------------------------
# Fakes
# -----------------------------------------------------------------------------


class FakeDirectory(DirectoryAdapter):
    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.calls = []

    async def lookup_deleted_account(self, alias):
        self.calls.append(alias)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


class FakeMailbox(MailboxAdapter):
    def __init__(self, active=None, soft_deleted=None, stats=None, lookup_error=None, stats_error=None):
        self.active = active
        self.soft_deleted = soft_deleted
        self.stats = stats
        self.lookup_error = lookup_error
        self.stats_error = stats_error
        self.lookup_calls = []
        self.stats_calls = []

    async def lookup_mailbox(self, alias, include_soft_deleted=False):
        self.lookup_calls.append((alias, include_soft_deleted))
        if self.lookup_error:
            raise self.lookup_error
        return self.soft_deleted if include_soft_deleted else self.active

    async def get_mailbox_statistics(self, mailbox):
        self.stats_calls.append(mailbox.identity)
        if self.stats_error:
            raise self.stats_error
        return self.stats


class FakeStorage(StorageAdapter):
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def lookup_site(self, admin_url, site_url):
        self.calls.append((admin_url, site_url))
        if self.error:
            raise self.error
        return self.result


def make_collector(directory=None, mailbox=None, storage=None, now=None, timeout=5.0):
    return EvidenceCollector(
        directory=directory or FakeDirectory(),
        mailbox=mailbox or FakeMailbox(),
        storage=storage if storage is not None else [(T1, FakeStorage())],
        user_domain="contoso.com",
        timeout_seconds=timeout,
        clock=(lambda: now) if now else None,
    )


ACTIVE_MAILBOX = MailboxRecord(
    identity="guid-active",
    soft_deleted=False,
    display_name="Jane Doe",
    primary_address="jdoe@contoso.com",
    litigation_hold=True,
)


def soft_deleted_mailbox(deleted_at):
    return MailboxRecord(identity="guid-soft", soft_deleted=True, display_name="Jane Doe", soft_deleted_at=deleted_at)


# -----------------------------------------------------------------------------
# Tests
# -----------------------------------------------------------------------------


class TestInputValidation:
    """Empty aliases are rejected before any backend call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("alias", ["", "   ", "\t\n", None])
    async def test_empty_alias_raises_without_calls(self, alias):
        directory = FakeDirectory()
        mailbox = FakeMailbox()
        storage = FakeStorage()
        collector = make_collector(directory, mailbox, [(T1, storage)])

        with pytest.raises(InputError):
            await collector.collect(alias)

        assert directory.calls == []
        assert mailbox.lookup_calls == []
        assert storage.calls == []

    @pytest.mark.asyncio
    async def test_alias_is_trimmed_and_uppercased(self):
        directory = FakeDirectory()
        collector = make_collector(directory)

        result = await collector.collect("  jdoe ")

        assert result.alias == "JDOE"
        assert directory.calls == ["JDOE"]


class TestOneFindingPerCategory:
    """Exactly one finding per backend category, whatever fails."""

    @pytest.mark.asyncio
    async def test_all_backends_fail(self):
        collector = make_collector(
            FakeDirectory(error=AdapterError("directory", "down")),
            FakeMailbox(lookup_error=AdapterError("mailbox", "down")),
            [(T1, FakeStorage(error=AdapterError("storage", "down"))), (T2, FakeStorage(error=RuntimeError("boom")))],
        )

        result = await collector.collect("jdoe")

        assert [f.source.kind for f in result.findings] == [SourceKind.DIRECTORY, SourceKind.MAILBOX, SourceKind.STORAGE]
        assert all(f.status == FindingStatus.ERROR for f in result.findings)
        assert all(f.data_present is False for f in result.findings)
        assert result.has_data is False

    @pytest.mark.asyncio
    async def test_directory_outage_does_not_block_other_backends(self, now):
        mailbox = FakeMailbox(active=ACTIVE_MAILBOX, stats=MailboxStatistics(item_count=5, total_size_bytes=2048))
        storage = FakeStorage()
        collector = make_collector(FakeDirectory(error=AdapterError("directory", "503")), mailbox, [(T1, storage)], now)

        result = await collector.collect("jdoe")

        assert result.directory.status == FindingStatus.ERROR
        assert result.directory.detail["error"] == "503"
        assert result.mailbox.status == FindingStatus.ACTIVE
        assert result.mailbox.data_present is True
        assert len(storage.calls) == 1
        assert result.has_data is True
        assert recommend(result).decision == Decision.RETAIN

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_error_finding(self):
        collector = make_collector(FakeDirectory(error=KeyError("deletedDateTime")))

        result = await collector.collect("jdoe")

        assert result.directory.status == FindingStatus.ERROR
        assert "unexpected error" in result.directory.detail["error"]

    @pytest.mark.asyncio
    async def test_timeout_becomes_error_finding(self):
        collector = make_collector(FakeDirectory(delay=1.0), timeout=0.01)

        result = await collector.collect("jdoe")

        assert result.directory.status == FindingStatus.ERROR
        assert "no response within" in result.directory.detail["error"]

    @pytest.mark.asyncio
    async def test_slow_token_fetch_is_bounded_by_timeout(self):
        with patch("investigator.adapters.auth.ClientSecretCredential") as credential_cls:
            credential_cls.return_value.get_token.side_effect = lambda scope: time.sleep(1.0)
            directory = GraphDirectoryAdapter("tenant", tokens=TokenProvider("client", "secret"))
            collector = make_collector(directory, timeout=0.1)

            started = time.monotonic()
            result = await collector.collect("jdoe")
            elapsed = time.monotonic() - started
            await directory.close()

        assert result.directory.status == FindingStatus.ERROR
        assert "no response within" in result.directory.detail["error"]
        assert elapsed < 0.8

    @pytest.mark.asyncio
    async def test_out_of_range_timestamp_still_returns_investigation(self, now):
        directory = FakeDirectory(DeletedAccountRecord(deleted_at="/Date(99999999999999999)/"))
        collector = make_collector(directory, FakeMailbox(active=ACTIVE_MAILBOX, stats=MailboxStatistics(3, 1024)), now=now)

        result = await collector.collect("jdoe")

        assert result.directory.status == FindingStatus.DELETED
        assert result.canonical_deleted_at is None
        assert result.timeline is None
        assert recommend(result).decision == Decision.RETAIN


class TestDirectoryCollection:

    @pytest.mark.asyncio
    async def test_deleted_account(self, now):
        deleted_at = now - timedelta(days=10)
        directory = FakeDirectory(
            DeletedAccountRecord(deleted_at=deleted_at, primary_address="jdoe@contoso.com", display_name="Jane Doe")
        )
        collector = make_collector(directory, now=now)

        result = await collector.collect("jdoe")

        assert result.directory.status == FindingStatus.DELETED
        assert result.directory.deleted_at == deleted_at
        assert result.directory.data_present is False
        assert result.directory.detail["primary_address"] == "jdoe@contoso.com"
        assert result.canonical_deleted_at == deleted_at
        assert result.timeline.days_since_deletion == 10

    @pytest.mark.asyncio
    async def test_not_found(self):
        result = await make_collector(FakeDirectory(None)).collect("jdoe")

        assert result.directory.status == FindingStatus.NOT_FOUND
        assert result.directory.deleted_at is None


class TestMailboxCollection:
    """Two-phase lookup: active first, soft-deleted only after NotFound."""

    @pytest.mark.asyncio
    async def test_active_mailbox_skips_soft_deleted_lookup(self):
        mailbox = FakeMailbox(active=ACTIVE_MAILBOX, stats=MailboxStatistics(item_count=0, total_size_bytes=0))

        result = await make_collector(mailbox=mailbox).collect("jdoe")

        assert mailbox.lookup_calls == [("JDOE", False)]
        assert mailbox.stats_calls == ["guid-active"]
        assert result.mailbox.status == FindingStatus.ACTIVE
        assert result.mailbox.data_present is False
        assert result.mailbox.detail["litigation_hold"] is True

    @pytest.mark.asyncio
    async def test_soft_deleted_lookup_after_not_found(self, now):
        deleted_at = now - timedelta(days=3)
        mailbox = FakeMailbox(soft_deleted=soft_deleted_mailbox(deleted_at), stats=MailboxStatistics(item_count=12))

        result = await make_collector(mailbox=mailbox, now=now).collect("jdoe")

        assert mailbox.lookup_calls == [("JDOE", False), ("JDOE", True)]
        assert result.mailbox.status == FindingStatus.SOFT_DELETED
        assert result.mailbox.deleted_at == deleted_at
        assert result.mailbox.data_present is True
        assert result.canonical_deleted_at == deleted_at
        assert result.deletion_source == FindingSource.mailbox()

    @pytest.mark.asyncio
    async def test_not_found_in_either_phase(self):
        mailbox = FakeMailbox()

        result = await make_collector(mailbox=mailbox).collect("jdoe")

        assert mailbox.lookup_calls == [("JDOE", False), ("JDOE", True)]
        assert mailbox.stats_calls == []
        assert result.mailbox.status == FindingStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_active_lookup_error_does_not_try_soft_deleted(self):
        mailbox = FakeMailbox(lookup_error=AdapterError("mailbox", "401"))

        result = await make_collector(mailbox=mailbox).collect("jdoe")

        assert mailbox.lookup_calls == [("JDOE", False)]
        assert result.mailbox.status == FindingStatus.ERROR

    @pytest.mark.asyncio
    async def test_statistics_failure_keeps_status(self):
        mailbox = FakeMailbox(active=ACTIVE_MAILBOX, stats_error=AdapterError("mailbox", "stats timeout"))

        result = await make_collector(mailbox=mailbox).collect("jdoe")

        assert result.mailbox.status == FindingStatus.ACTIVE
        assert result.mailbox.data_present is False
        assert result.mailbox.detail["statistics_error"] == "stats timeout"
        assert result.mailbox.detail["display_name"] == "Jane Doe"

    @pytest.mark.asyncio
    async def test_size_without_items_counts_as_data(self):
        mailbox = FakeMailbox(active=ACTIVE_MAILBOX, stats=MailboxStatistics(item_count=0, total_size_bytes=4096))

        result = await make_collector(mailbox=mailbox).collect("jdoe")

        assert result.mailbox.data_present is True


class TestStorageCollection:
    """Tenants in priority order, first site found wins."""

    @pytest.mark.asyncio
    async def test_stops_after_first_found_tenant(self):
        t1 = FakeStorage(SiteRecord(url="https://t1-my.example/personal/jdoe_contoso_com", usage_bytes=1024))
        t2 = FakeStorage(SiteRecord(url="https://t2-my.example/personal/jdoe_contoso_com", usage_bytes=1024))

        result = await make_collector(storage=[(T1, t1), (T2, t2)]).collect("jdoe")

        assert len(t1.calls) == 1
        assert len(t2.calls) == 0
        assert result.storage.source == FindingSource.storage("t1")
        assert result.storage.status == FindingStatus.ACTIVE
        assert result.storage.data_present is True
        assert result.storage.detail["tenants_checked"] == 1

    @pytest.mark.asyncio
    async def test_falls_through_to_second_tenant(self):
        t1 = FakeStorage(None)
        t2 = FakeStorage(SiteRecord(url="https://t2-my.example/personal/jdoe_contoso_com", usage_bytes=0))

        result = await make_collector(storage=[(T1, t1), (T2, t2)]).collect("jdoe")

        assert len(t1.calls) == 1
        assert len(t2.calls) == 1
        assert result.storage.source.tenant == "t2"
        assert result.storage.data_present is False

    @pytest.mark.asyncio
    async def test_site_url_built_from_alias_and_domain(self):
        t1 = FakeStorage(None)

        await make_collector(storage=[(T1, t1)]).collect("JDoe")

        assert t1.calls == [("https://t1-admin.example", "https://t1-my.example/personal/jdoe_contoso_com")]

    @pytest.mark.asyncio
    async def test_none_found_emits_single_not_found(self):
        t1, t2 = FakeStorage(None), FakeStorage(None)

        result = await make_collector(storage=[(T1, t1), (T2, t2)]).collect("jdoe")

        storage_findings = [f for f in result.findings if f.source.kind == SourceKind.STORAGE]
        assert len(storage_findings) == 1
        assert storage_findings[0].status == FindingStatus.NOT_FOUND
        assert storage_findings[0].detail["summary"] == "checked 2 tenants"

    @pytest.mark.asyncio
    async def test_tenant_error_does_not_stop_search(self):
        t1 = FakeStorage(error=AdapterError("storage", "HTTP 500"))
        t2 = FakeStorage(SiteRecord(url="https://t2-my.example/personal/jdoe_contoso_com", usage_bytes=10))

        result = await make_collector(storage=[(T1, t1), (T2, t2)]).collect("jdoe")

        assert result.storage.status == FindingStatus.ACTIVE
        assert result.storage.detail["tenant_errors"] == {"t1": "HTTP 500"}

    @pytest.mark.asyncio
    async def test_mixed_error_and_not_found_is_not_found(self):
        t1 = FakeStorage(error=AdapterError("storage", "HTTP 500"))
        t2 = FakeStorage(None)

        result = await make_collector(storage=[(T1, t1), (T2, t2)]).collect("jdoe")

        assert result.storage.status == FindingStatus.NOT_FOUND
        assert result.storage.detail["tenant_errors"] == {"t1": "HTTP 500"}

    @pytest.mark.asyncio
    async def test_no_tenants_configured(self):
        result = await make_collector(storage=[]).collect("jdoe")

        assert result.storage.status == FindingStatus.NOT_FOUND
        assert result.storage.detail["summary"] == "checked 0 tenants"


class TestIdempotence:

    @pytest.mark.asyncio
    async def test_identical_responses_give_equal_investigations(self, now):
        def build():
            return make_collector(
                FakeDirectory(DeletedAccountRecord(deleted_at=now - timedelta(days=4))),
                FakeMailbox(soft_deleted=soft_deleted_mailbox(now - timedelta(days=2)), stats=MailboxStatistics(3)),
                [(T1, FakeStorage(None)), (T2, FakeStorage(SiteRecord(url="u", usage_bytes=5)))],
                now=now,
            )

        first = await build().collect("jdoe")
        second = await build().collect("jdoe")

        assert first == second
