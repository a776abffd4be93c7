from services.tasks import InlineScheduler, ThreadPoolScheduler


def test_inline_scheduler_runs_and_contains_failures(caplog):
    seen = []
    scheduler = InlineScheduler()
    scheduler.schedule(seen.append, 1)

    def boom():
        raise RuntimeError("nope")

    scheduler.schedule(boom)
    assert seen == [1]
    assert "background task boom failed" in caplog.text


def test_thread_pool_scheduler_completes_work():
    seen = []
    scheduler = ThreadPoolScheduler(max_workers=2)
    for i in range(3):
        scheduler.schedule(seen.append, i)
    scheduler.shutdown()
    assert sorted(seen) == [0, 1, 2]
    assert all(f.done() for f in scheduler.futures)
