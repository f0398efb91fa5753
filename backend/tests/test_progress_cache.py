from examportal.client.progress_cache import ProgressCache, ProgressSnapshot


def test_save_then_load_round_trip(tmp_path):
    cache = ProgressCache(tmp_path / "progress")
    snap = ProgressSnapshot(answers={"q1": "2", "q2": "0"}, current_question=1, time_remaining=1234, deadline=1_700_000_000.5)

    cache.save("101", snap)

    assert cache.load("101") == snap


def test_missing_record_is_none(tmp_path):
    assert ProgressCache(tmp_path).load("nope") is None


def test_records_are_per_exam(tmp_path):
    cache = ProgressCache(tmp_path)
    cache.save("a", ProgressSnapshot(answers={"q": "1"}, time_remaining=10))
    cache.save("b", ProgressSnapshot(answers={"q": "3"}, time_remaining=20))
    assert cache.load("a").answers == {"q": "1"}
    assert cache.load("b").time_remaining == 20


def test_corrupt_records_fail_soft(tmp_path):
    cache = ProgressCache(tmp_path)
    cache.save("x", ProgressSnapshot())
    path = next(tmp_path.glob("exam-x.json"))

    path.write_text("{not json", encoding="utf-8")
    assert cache.load("x") is None

    path.write_text('{"answers": [1, 2], "currentQuestion": -4}', encoding="utf-8")
    assert cache.load("x") is None

    path.write_bytes(b'{"answers": {"q1": "\xff\xfe"}}')
    assert cache.load("x") is None


def test_clear_is_idempotent(tmp_path):
    cache = ProgressCache(tmp_path)
    cache.save("x", ProgressSnapshot(time_remaining=5))
    cache.clear("x")
    cache.clear("x")
    assert cache.load("x") is None


def test_exam_ids_cannot_escape_directory(tmp_path):
    cache = ProgressCache(tmp_path / "inner")
    cache.save("../../etc", ProgressSnapshot(time_remaining=1))
    assert list((tmp_path / "inner").iterdir())
    assert cache.load("../../etc").time_remaining == 1


def test_non_finite_deadline_is_corrupt(tmp_path):
    cache = ProgressCache(tmp_path)
    cache.save("x", ProgressSnapshot(time_remaining=5))
    path = next(tmp_path.glob("exam-x.json"))

    for value in ("NaN", "Infinity", "-Infinity"):
        path.write_text('{"answers": {}, "timeRemaining": 5, "deadline": %s}' % value, encoding="utf-8")
        assert cache.load("x") is None
