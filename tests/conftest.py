"""
Shared fixtures: a small on-disk instance directory and a store over it.
"""
import os

os.environ.setdefault("MPLBACKEND", "Agg")

import pytest

from capacity_ledger.ledger.admission import AllocationPolicy
from capacity_ledger.preprocessing.loaders import LedgerSettings
from capacity_ledger.store.resource_store import ResourceStore

from helpers import write_instance


@pytest.fixture
def instance_dir(tmp_path):
    return write_instance(tmp_path / "instance")


@pytest.fixture
def store(instance_dir):
    return ResourceStore.from_instance_dir(instance_dir)


@pytest.fixture
def overlapping_store(instance_dir):
    return ResourceStore.from_instance_dir(
        instance_dir, LedgerSettings(allocation_policy=AllocationPolicy.OVERLAPPING)
    )
