import os
import re
import stat
import time

import pytest

from core.archive_engine import ArchiveEngine
from core.entities import CandidateFile
from model.archive import ArchivePolicy
from model.pod import PodRef
from util.enums import ArchiveStage, NamingMode

POD = PodRef(namespace="ns1", name="pod1")
BACKUP_NAME = re.compile(r"^\d{8}-\d{6}-(?P<name>.+)$")


def backups(backup_root, pod=POD):
    pod_dir = backup_root / pod.namespace / pod.name
    if not pod_dir.exists():
        return []
    return sorted(p.name for p in pod_dir.iterdir())


def engine_candidate(path):
    st = os.stat(path)
    return CandidateFile(path=str(path), mtime=st.st_mtime, size=st.st_size, mode=stat.S_IMODE(st.st_mode))


@pytest.fixture
def sweep_policy():
    return ArchivePolicy.for_sweep(60.0)


@pytest.fixture
def event_policy():
    return ArchivePolicy.for_event()


class TestEligibility:
    def test_sweep_ignores_plain_log(self, make_config, make_log, log_root, backup_root, sweep_policy):
        make_log("ns1_pod1_x/app/0.log", age=600)
        engine = ArchiveEngine(make_config())

        result = engine.archive(str(log_root / "ns1_pod1_x"), POD, sweep_policy)

        assert result.copied == 0
        assert backups(backup_root) == []

    def test_sweep_waits_for_staleness(self, make_config, make_log, log_root, backup_root, sweep_policy):
        src = make_log("ns1_pod1_x/app.gz", age=5)
        engine = ArchiveEngine(make_config())

        assert engine.archive(str(log_root / "ns1_pod1_x"), POD, sweep_policy).copied == 0

        old = int(time.time() - 120)
        os.utime(src, (old, old))
        assert engine.archive(str(log_root / "ns1_pod1_x"), POD, sweep_policy).copied == 1
        assert len(backups(backup_root)) == 1

    def test_sweep_skips_empty_files(self, make_config, make_log, log_root, backup_root, sweep_policy):
        make_log("ns1_pod1_x/app.gz", content=b"", age=600)
        result = ArchiveEngine(make_config()).archive(str(log_root / "ns1_pod1_x"), POD, sweep_policy)
        assert result.copied == 0
        assert result.errors == []

    def test_sweep_skips_unreadable_files(
        self, make_config, make_log, log_root, backup_root, sweep_policy, monkeypatch
    ):
        src = make_log("ns1_pod1_x/app.gz", age=600)
        make_log("ns1_pod1_x/ok.gz", age=600)
        real_open = open

        def guarded_open(path, *args, **kwargs):
            if str(path) == str(src):
                raise PermissionError(13, "Permission denied", str(path))
            return real_open(path, *args, **kwargs)

        # Shadows the builtin inside the engine module only
        monkeypatch.setattr("core.archive_engine.open", guarded_open, raising=False)

        result = ArchiveEngine(make_config()).archive(str(log_root / "ns1_pod1_x"), POD, sweep_policy)

        assert result.copied == 1
        assert result.errors == []
        [name] = backups(backup_root)
        assert BACKUP_NAME.match(name).group("name") == "ok.gz"

    def test_event_takes_fresh_empty_and_rotated_files(
        self, make_config, make_log, log_root, backup_root, event_policy
    ):
        make_log("ns1_pod1_x/app/0.log", age=0)
        make_log("ns1_pod1_x/app/1.log.20240501-101010", content=b"", age=0)
        make_log("ns1_pod1_x/app/2.log.20240501-090000.gz", age=0)
        make_log("ns1_pod1_x/app/notes.txt", age=0)

        result = ArchiveEngine(make_config()).archive(str(log_root / "ns1_pod1_x"), POD, event_policy)

        assert result.copied == 3
        names = {BACKUP_NAME.match(n).group("name") for n in backups(backup_root)}
        assert names == {"0.log", "1.log.20240501-101010", "2.log.20240501-090000.gz"}

    def test_directories_are_walked_not_copied(self, make_config, make_log, log_root, backup_root, event_policy):
        make_log("ns1_pod1_x/a/b/c/deep.log")
        (log_root / "ns1_pod1_x" / "empty.log.d").mkdir()

        result = ArchiveEngine(make_config()).archive(str(log_root / "ns1_pod1_x"), POD, event_policy)

        assert result.copied == 1
        assert BACKUP_NAME.match(backups(backup_root)[0]).group("name") == "deep.log"


class TestDestination:
    def test_timestamp_naming(self, make_config, make_log, log_root, backup_root, event_policy):
        make_log("ns1_pod1_x/app.gz")
        fixed = time.mktime((2024, 5, 1, 10, 20, 30, 0, 0, -1))
        engine = ArchiveEngine(make_config(), clock=lambda: fixed)

        engine.archive(str(log_root / "ns1_pod1_x"), POD, event_policy)

        assert backups(backup_root) == ["20240501-102030-app.gz"]

    def test_copy_preserves_bytes_mode_and_mtime(
        self, make_config, make_log, log_root, backup_root, event_policy
    ):
        payload = os.urandom(3 * 1024 * 1024 + 17)
        src = make_log("ns1_pod1_x/app.gz", content=payload, age=3600)
        os.chmod(src, 0o640)
        src_mtime = int(os.stat(src).st_mtime)

        ArchiveEngine(make_config()).archive(str(log_root / "ns1_pod1_x"), POD, event_policy)

        dst = backup_root / "ns1" / "pod1" / backups(backup_root)[0]
        assert dst.read_bytes() == payload
        assert stat.S_IMODE(os.stat(dst).st_mode) == 0o640
        assert int(os.stat(dst).st_mtime) == src_mtime


class TestIdempotence:
    def test_second_run_in_same_second_skips(self, make_config, make_log, log_root, backup_root, event_policy):
        src = make_log("ns1_pod1_x/app.gz", content=b"original")
        now = time.time()
        engine = ArchiveEngine(make_config(), clock=lambda: now)

        first = engine.archive(str(log_root / "ns1_pod1_x"), POD, event_policy)
        src.write_bytes(b"changed after the first copy")
        second = engine.archive(str(log_root / "ns1_pod1_x"), POD, event_policy)

        assert (first.copied, first.skipped) == (1, 0)
        assert (second.copied, second.skipped) == (0, 1)
        [name] = backups(backup_root)
        assert (backup_root / "ns1" / "pod1" / name).read_bytes() == b"original"

    def test_timestamp_mode_duplicates_across_seconds(
        self, make_config, make_log, log_root, backup_root, event_policy
    ):
        make_log("ns1_pod1_x/app.gz")
        ticks = iter([1_700_000_000.0, 1_700_000_001.0])
        clock_value = {"now": next(ticks)}
        engine = ArchiveEngine(make_config(), clock=lambda: clock_value["now"])

        engine.archive(str(log_root / "ns1_pod1_x"), POD, event_policy)
        clock_value["now"] = next(ticks)
        engine.archive(str(log_root / "ns1_pod1_x"), POD, event_policy)

        assert len(backups(backup_root)) == 2

    def test_mtime_mode_dedups_across_seconds(self, make_config, make_log, log_root, backup_root, event_policy):
        make_log("ns1_pod1_x/app.gz", age=300)
        clock_value = {"now": time.time()}
        engine = ArchiveEngine(make_config(naming_mode=NamingMode.MTIME), clock=lambda: clock_value["now"])

        first = engine.archive(str(log_root / "ns1_pod1_x"), POD, event_policy)
        clock_value["now"] += 5
        second = engine.archive(str(log_root / "ns1_pod1_x"), POD, event_policy)

        assert first.copied == 1
        assert (second.copied, second.skipped) == (0, 1)
        assert len(backups(backup_root)) == 1


class TestRemoval:
    def test_default_preserves_source(self, make_config, make_log, log_root, backup_root, event_policy):
        src = make_log("ns1_pod1_x/app.gz", content=b"keep me")

        result = ArchiveEngine(make_config()).archive(str(log_root / "ns1_pod1_x"), POD, event_policy)

        assert result.removed == 0
        assert src.read_bytes() == b"keep me"

    def test_remove_after_copy(self, make_config, make_log, log_root, backup_root, event_policy):
        src = make_log("ns1_pod1_x/app.gz", content=b"move me")

        result = ArchiveEngine(make_config(remove_after_copy=True)).archive(
            str(log_root / "ns1_pod1_x"), POD, event_policy
        )

        assert (result.copied, result.removed) == (1, 1)
        assert not src.exists()
        [name] = backups(backup_root)
        assert (backup_root / "ns1" / "pod1" / name).read_bytes() == b"move me"

    def test_copy_failure_keeps_source_and_leaves_no_partial(
        self, make_config, make_log, log_root, backup_root, event_policy, monkeypatch
    ):
        src = make_log("ns1_pod1_x/app.gz", content=b"precious")
        make_log("ns1_pod1_x/other.gz", content=b"fine")
        calls = {"n": 0}
        real_copy = __import__("shutil").copyfileobj

        def flaky_copy(fsrc, fdst, length=0):
            calls["n"] += 1
            if fsrc.name == str(src):
                fdst.write(b"prec")
                raise OSError(28, "No space left on device")
            return real_copy(fsrc, fdst, length)

        monkeypatch.setattr("core.archive_engine.shutil.copyfileobj", flaky_copy)

        result = ArchiveEngine(make_config(remove_after_copy=True)).archive(
            str(log_root / "ns1_pod1_x"), POD, event_policy
        )

        assert calls["n"] == 2
        assert result.copied == 1
        assert [e.stage for e in result.errors] == [ArchiveStage.COPY]
        assert result.errors[0].path == str(src)
        assert src.read_bytes() == b"precious"
        names = backups(backup_root)
        assert len(names) == 1
        assert BACKUP_NAME.match(names[0]).group("name") == "other.gz"


    def test_mtime_mode_finishes_interrupted_move(
        self, make_config, make_log, log_root, backup_root, sweep_policy, monkeypatch
    ):
        src = make_log("ns1_pod1_x/app.gz", content=b"rotated", age=600)
        real_remove = os.remove

        def refuse_source(path):
            if path == str(src):
                raise PermissionError(13, "Permission denied", path)
            return real_remove(path)

        engine = ArchiveEngine(make_config(remove_after_copy=True, naming_mode=NamingMode.MTIME))
        with monkeypatch.context() as m:
            m.setattr(os, "remove", refuse_source)
            first = engine.archive(str(log_root / "ns1_pod1_x"), POD, sweep_policy)

        assert first.copied == 1
        assert [e.stage for e in first.errors] == [ArchiveStage.REMOVE]
        assert src.exists()

        second = engine.archive(str(log_root / "ns1_pod1_x"), POD, sweep_policy)

        assert (second.copied, second.skipped, second.removed) == (0, 1, 1)
        assert second.errors == []
        assert not src.exists()
        [name] = backups(backup_root)
        assert (backup_root / "ns1" / "pod1" / name).read_bytes() == b"rotated"

        third = engine.archive(str(log_root / "ns1_pod1_x"), POD, sweep_policy)
        assert (third.skipped, third.removed, third.errors) == (0, 0, [])

    def test_mtime_mode_keeps_source_when_backup_differs(
        self, make_config, make_log, log_root, backup_root, event_policy
    ):
        src = make_log("ns1_pod1_x/app.gz", content=b"current bytes", age=600)
        engine = ArchiveEngine(make_config(remove_after_copy=True, naming_mode=NamingMode.MTIME))
        dst = engine.namer.destination(POD, engine_candidate(src))
        os.makedirs(os.path.dirname(dst))
        with open(dst, "wb") as f:
            f.write(b"other")

        result = engine.archive(str(log_root / "ns1_pod1_x"), POD, event_policy)

        assert (result.skipped, result.removed) == (1, 0)
        assert src.read_bytes() == b"current bytes"

    def test_timestamp_mode_never_removes_on_skip(
        self, make_config, make_log, log_root, backup_root, event_policy, monkeypatch
    ):
        src = make_log("ns1_pod1_x/app.gz")
        now = time.time()
        engine = ArchiveEngine(make_config(remove_after_copy=True), clock=lambda: now)
        real_remove = os.remove

        def refuse_source(path):
            if path == str(src):
                raise PermissionError(13, "Permission denied", path)
            return real_remove(path)

        with monkeypatch.context() as m:
            m.setattr(os, "remove", refuse_source)
            engine.archive(str(log_root / "ns1_pod1_x"), POD, event_policy)

        result = engine.archive(str(log_root / "ns1_pod1_x"), POD, event_policy)

        assert (result.skipped, result.removed) == (1, 0)
        assert src.exists()

    def test_source_already_gone_is_not_an_error(
        self, make_config, make_log, log_root, backup_root, event_policy, monkeypatch
    ):
        src = make_log("ns1_pod1_x/app.gz")
        real_remove = os.remove

        def raced(path):
            if path == str(src):
                real_remove(path)
                raise FileNotFoundError(2, "No such file or directory", path)
            return real_remove(path)

        monkeypatch.setattr(os, "remove", raced)
        result = ArchiveEngine(make_config(remove_after_copy=True)).archive(
            str(log_root / "ns1_pod1_x"), POD, event_policy
        )

        assert result.copied == 1
        assert result.removed == 0
        assert result.errors == []
        assert not src.exists()


class TestErrors:
    def test_mkdir_failure_is_per_file(self, make_config, make_log, log_root, backup_root, event_policy):
        src = make_log("ns1_pod1_x/app.gz")
        backup_root.mkdir()
        (backup_root / "ns1").write_text("not a directory")

        result = ArchiveEngine(make_config(remove_after_copy=True)).archive(
            str(log_root / "ns1_pod1_x"), POD, event_policy
        )

        assert result.copied == 0
        assert [e.stage for e in result.errors] == [ArchiveStage.MKDIR]
        assert src.exists()

    def test_missing_directory_is_a_walk_error(self, make_config, log_root, event_policy):
        result = ArchiveEngine(make_config()).archive(str(log_root / "ns1_pod1_gone"), POD, event_policy)

        assert not result.ok
        assert result.errors[0].stage == ArchiveStage.WALK
