"""Account Directory — role lookup by name against the accounts table.

Tests cover:
    - Case-insensitive username match
    - Missing account → None (unknown target, not an error)
    - Legacy role labels parse; unparseable labels are treated as unknown
    - Health check succeeds on a live database
"""

from relay.core.domain_types import Identity, Role
from relay.infrastructure.account_directory import SqlAccountDirectory


async def test_role_lookup_is_case_insensitive(db_manager, seed_accounts):
    directory = SqlAccountDirectory(db_manager)
    assert await directory.get_role(Identity("alice")) is Role.ORDINARY
    assert await directory.get_role(Identity("ALICE")) is Role.ORDINARY


async def test_privileged_account(db_manager, seed_accounts):
    directory = SqlAccountDirectory(db_manager)
    assert await directory.get_role(Identity("carol")) is Role.PRIVILEGED


async def test_missing_account_is_unknown(db_manager, seed_accounts):
    directory = SqlAccountDirectory(db_manager)
    assert await directory.get_role(Identity("zed")) is None


async def test_legacy_role_label_is_parsed(db_manager, seed_accounts):
    directory = SqlAccountDirectory(db_manager)
    assert await directory.get_role(Identity("legacy")) is Role.PRIVILEGED


async def test_unparseable_role_is_unknown(db_manager, seed_accounts):
    directory = SqlAccountDirectory(db_manager)
    assert await directory.get_role(Identity("broken")) is None


async def test_health_check_on_live_database(db_manager):
    assert await db_manager.health_check() is True
