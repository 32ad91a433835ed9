from storefront.intents import InMemoryIntentStore
from storefront.models import ApplyFiltersAction, FilterCriteria, LastIntent

class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

def intent(ts):
    return LastIntent(ts=ts, transcript="anillos", action=ApplyFiltersAction(filters=FilterCriteria(category="Anillo")))

def test_save_load_clear():
    store = InMemoryIntentStore(clock=Clock(1000.0))
    assert store.load("s1") is None
    store.save("s1", intent(990.0))
    assert store.load("s1").transcript == "anillos"
    store.clear("s1")
    assert store.load("s1") is None
    store.clear("never-saved")

def test_stale_and_invalid_entries_are_dropped():
    clock = Clock(1000.0)
    store = InMemoryIntentStore(max_age=60, clock=clock)
    store.save("s1", intent(950.0))
    store.save("s2", intent(0))
    assert store.load("s2") is None
    assert store.load("s1") is not None
    clock.now = 1011.0
    assert store.load("s1") is None

def test_expired_sessions_are_pruned_on_save():
    clock = Clock(1000.0)
    store = InMemoryIntentStore(max_age=10, clock=clock)
    for i in range(1000):
        store.save(f"s{i}", intent(1000.0))
    assert len(store) == 1000
    clock.now = 101000.0
    store.save("fresh", intent(101000.0))
    assert len(store) == 1
    assert store.load("fresh") is not None
