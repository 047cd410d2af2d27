"""
Shared fixtures: a snapshot store holding two snapshots of an orders table
"""

import pytest
import pandas as pd
from snapdiff import SnapshotStore


@pytest.fixture
def orders_frame():
    return pd.DataFrame({
        'snapshot_id': [1, 1, 1, 2, 2, 2],
        'order_id': [100, 101, 102, 100, 101, 103],
        'Retailer': ['Acme', 'Acme', 'Bolt', 'Acme', 'Bolt', 'Bolt'],
        'status': ['open', 'open', 'shipped', 'open', 'closed', 'open'],
        'DateStarted': pd.to_datetime(['2024-01-01', '2024-01-02', '2024-01-03',
                                       '2024-01-01', '2024-01-02', '2024-01-05']),
        'DateFinished': pd.to_datetime([None, None, '2024-01-04', None, '2024-01-06', None]),
        'DateRefinished': pd.to_datetime([None, None, None, None, None, None]),
    })


@pytest.fixture
def store(orders_frame):
    store = SnapshotStore(tables={'orders_ss': orders_frame}, snapshots={1: 'orders_ss', 2: 'orders_ss'})
    store.open()
    yield store
    store.close()
