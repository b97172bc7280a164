"""
Тесты для модуля planner.py
"""

import dataclasses
import pytest
import tempfile
import shutil
import os
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock, patch

from datesort.file_ops import (
    FileOps,
    DestinationCollisionError,
    DirectoryCreationError,
    InvalidSourceError,
    MetadataUnavailableError
)
from datesort.logger import DateSortLogger
from datesort.planner import (
    BucketRegistry,
    Entry,
    Planner,
    PlannedRelocation,
    RelocationPlan,
    format_date_key,
    resolve_modified
)


def set_mtime(path: Path, year: int, month: int, day: int, hour: int = 12) -> None:
    """Выставляет время изменения файла (UTC)."""
    ts = datetime(year, month, day, hour, tzinfo=timezone.utc).timestamp()
    os.utime(path, (ts, ts))


class TestDateHelpers:
    """Тесты для форматирования дат."""

    def test_format_date_key(self):
        """Дата форматируется как YYYY-MM-DD с ведущими нулями."""
        assert format_date_key(datetime(2024, 3, 1)) == "2024-03-01"
        assert format_date_key(datetime(987, 1, 2)) == "0987-01-02"

    def test_resolve_modified_utc(self):
        """По умолчанию дата берется в UTC."""
        ts = datetime(2024, 3, 1, 23, 30, tzinfo=timezone.utc).timestamp()

        modified = resolve_modified(ts)

        assert modified.tzinfo == timezone.utc
        assert format_date_key(modified) == "2024-03-01"

    def test_resolve_modified_local(self):
        """С use_local_time дата берется в локальном поясе."""
        ts = datetime(2024, 3, 1, 12, tzinfo=timezone.utc).timestamp()

        modified = resolve_modified(ts, use_local_time=True)

        assert modified.tzinfo is not None
        assert modified == datetime.fromtimestamp(ts).astimezone()


class TestEntry:
    """Тесты для Entry."""

    def test_date_key(self):
        entry = Entry(Path("a.txt"), "a.txt", False, datetime(2024, 3, 1, tzinfo=timezone.utc))
        assert entry.date_key == "2024-03-01"

    def test_directory_has_no_date(self):
        entry = Entry(Path("sub"), "sub", True)
        with pytest.raises(ValueError):
            entry.date_key

    def test_entry_is_immutable(self):
        entry = Entry(Path("a.txt"), "a.txt", False)
        with pytest.raises(dataclasses.FrozenInstanceError):
            entry.name = "b.txt"


class TestRelocationPlan:
    """Тесты для RelocationPlan."""

    def test_len_iter_and_counts(self):
        pair = PlannedRelocation(Path("src/a.txt"), Path("dst/2024-03-01/a.txt"), "2024-03-01")
        plan = RelocationPlan(relocations=[pair], skipped=[Path("src/sub")])

        assert len(plan) == 1
        assert list(plan) == [pair]
        assert plan.entries_scanned == 2


class TestBucketRegistry:
    """Тесты для BucketRegistry."""

    @pytest.fixture
    def temp_dir(self):
        temp_path = tempfile.mkdtemp()
        yield Path(temp_path)
        shutil.rmtree(temp_path, ignore_errors=True)

    @pytest.fixture
    def mock_logger(self):
        return Mock(spec=DateSortLogger)

    def test_ensure_creates_once(self, temp_dir, mock_logger):
        """Каталог создается один раз на дату."""
        file_ops = Mock(spec=FileOps)
        file_ops.create_directory.side_effect = lambda p: p
        registry = BucketRegistry(temp_dir, file_ops, mock_logger)

        first = registry.ensure("2024-03-01")
        second = registry.ensure("2024-03-01")

        assert first == second == temp_dir / "2024-03-01"
        file_ops.create_directory.assert_called_once_with(temp_dir / "2024-03-01")
        assert "2024-03-01" in registry
        assert len(registry) == 1

    def test_ensure_concurrent_single_create(self, temp_dir, mock_logger):
        """Параллельные обращения приводят к одному созданию каталога."""
        calls = []

        def slow_create(path):
            calls.append(path)
            time.sleep(0.05)
            path.mkdir()
            return path

        file_ops = Mock(spec=FileOps)
        file_ops.create_directory.side_effect = slow_create
        registry = BucketRegistry(temp_dir, file_ops, mock_logger)

        results = []
        threads = [
            threading.Thread(target=lambda: results.append(registry.ensure("2024-03-01")))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1
        assert len(results) == 8
        assert all(path.is_dir() for path in results)

    def test_ensure_failure_not_registered(self, temp_dir, mock_logger):
        """Неудачное создание не запоминается."""
        file_ops = Mock(spec=FileOps)
        file_ops.create_directory.side_effect = DirectoryCreationError(
            "Ошибка создания каталога по дате", temp_dir / "2024-03-01", PermissionError()
        )
        registry = BucketRegistry(temp_dir, file_ops, mock_logger)

        with pytest.raises(DirectoryCreationError):
            registry.ensure("2024-03-01")

        assert "2024-03-01" not in registry
        assert registry.snapshot() == {}


class TestPlanner:
    """Тесты для класса Planner."""

    @pytest.fixture
    def temp_dir(self):
        temp_path = tempfile.mkdtemp()
        yield Path(temp_path)
        shutil.rmtree(temp_path, ignore_errors=True)

    @pytest.fixture
    def mock_logger(self):
        return Mock(spec=DateSortLogger)

    @pytest.fixture
    def source(self, temp_dir):
        """Исходный каталог: два файла за 2024-03-01, один за 2024-03-02 и подкаталог."""
        src = temp_dir / "src"
        src.mkdir()
        for name, day in (("a.txt", 1), ("b.txt", 1), ("c.txt", 2)):
            path = src / name
            path.write_text(name)
            set_mtime(path, 2024, 3, day)
        (src / "sub").mkdir()
        (src / "sub" / "nested.txt").write_text("nested")
        return src

    @pytest.fixture
    def destination(self, temp_dir):
        dst = temp_dir / "dst"
        dst.mkdir()
        return dst

    def make_planner(self, destination, logger, workers=1, **kwargs):
        return Planner(destination, FileOps(logger), logger, workers=workers, **kwargs)

    @pytest.mark.parametrize("workers", [1, 4])
    def test_plan_layout(self, source, destination, mock_logger, workers):
        """План раскладывает файлы по датам и пропускает подкаталоги."""
        planner = self.make_planner(destination, mock_logger, workers=workers)

        plan = planner.plan(source)

        assert [(r.source, r.destination) for r in plan] == [
            (source / "a.txt", destination / "2024-03-01" / "a.txt"),
            (source / "b.txt", destination / "2024-03-01" / "b.txt"),
            (source / "c.txt", destination / "2024-03-02" / "c.txt"),
        ]
        assert plan.skipped == [source / "sub"]
        assert set(plan.buckets) == {"2024-03-01", "2024-03-02"}
        assert sorted(p.name for p in destination.iterdir()) == ["2024-03-01", "2024-03-02"]
        # План - только данные: файлы еще не разложены
        assert not any((destination / "2024-03-01").iterdir())
        mock_logger.log_plan_ready.assert_called_once_with(3, 2)

    def test_plan_parallel_single_create_per_bucket(self, temp_dir, destination, mock_logger):
        """При параллельном планировании каталог на дату создается ровно один раз."""
        src = temp_dir / "many"
        src.mkdir()
        for i in range(40):
            path = src / f"f{i:02d}.txt"
            path.write_text(str(i))
            set_mtime(path, 2024, 3, 1 + i % 3)

        file_ops = FileOps(mock_logger)
        planner = Planner(destination, file_ops, mock_logger, workers=8)

        with patch.object(file_ops, 'create_directory', wraps=file_ops.create_directory) as spy:
            plan = planner.plan(src)

        assert len(plan) == 40
        assert spy.call_count == 3
        assert sorted(c.args[0].name for c in spy.call_args_list) == [
            "2024-03-01", "2024-03-02", "2024-03-03"
        ]

    def test_plan_buckets_match_distinct_dates(self, source, destination, mock_logger):
        """Набор каталогов совпадает с набором дат файлов."""
        planner = self.make_planner(destination, mock_logger)

        plan = planner.plan(source)

        assert set(plan.buckets) == {r.date_key for r in plan}
        assert plan.buckets == planner.registry.snapshot()

    def test_plan_empty_source(self, temp_dir, destination, mock_logger):
        """Пустой источник дает пустой план."""
        empty = temp_dir / "empty"
        empty.mkdir()

        plan = self.make_planner(destination, mock_logger).plan(empty)

        assert len(plan) == 0
        assert list(destination.iterdir()) == []

    def test_plan_collision_with_existing_file(self, source, destination, mock_logger):
        """Существующий целевой файл - DestinationCollisionError."""
        (destination / "2024-03-02").mkdir()
        existing = destination / "2024-03-02" / "c.txt"
        existing.write_text("already here")

        planner = self.make_planner(destination, mock_logger)

        with pytest.raises(DestinationCollisionError) as exc_info:
            planner.plan(source)

        assert exc_info.value.path == existing
        assert existing.read_text() == "already here"

    @pytest.mark.parametrize("workers", [1, 4])
    def test_plan_collision_keeps_created_buckets(self, source, destination, mock_logger, workers):
        """Каталоги, созданные до ошибки, не удаляются."""
        (destination / "2024-03-02").mkdir()
        (destination / "2024-03-02" / "c.txt").write_text("already here")

        planner = self.make_planner(destination, mock_logger, workers=workers)

        with pytest.raises(DestinationCollisionError):
            planner.plan(source)

        if workers == 1:
            # a.txt и b.txt обработаны до c.txt
            assert (destination / "2024-03-01").is_dir()
        # Источник не тронут
        assert sorted(p.name for p in source.iterdir()) == ["a.txt", "b.txt", "c.txt", "sub"]
        assert (destination / "2024-03-02").is_dir()

    def test_plan_missing_source(self, temp_dir, destination, mock_logger):
        """Отсутствующий источник - InvalidSourceError."""
        planner = self.make_planner(destination, mock_logger)

        with pytest.raises(InvalidSourceError):
            planner.plan(temp_dir / "missing")

    def test_plan_metadata_unavailable(self, source, destination, mock_logger):
        """Ошибка чтения метаданных прерывает планирование."""
        file_ops = FileOps(mock_logger)
        planner = Planner(destination, file_ops, mock_logger)

        with patch.object(file_ops, 'get_modified_time',
                          side_effect=MetadataUnavailableError("Не удалось прочитать время изменения",
                                                               source / "a.txt")):
            with pytest.raises(MetadataUnavailableError):
                planner.plan(source)

    @pytest.mark.parametrize("workers", [1, 4])
    def test_plan_entry_permission_denied(self, source, destination, mock_logger, workers):
        """Отказ в доступе при чтении метаданных - MetadataUnavailableError, а не OSError."""
        real_stat = os.stat
        denied = source / "a.txt"

        def stat_with_denied(path, *args, **kwargs):
            if isinstance(path, (str, os.PathLike)) and Path(path) == denied:
                raise PermissionError(13, "Permission denied", str(path))
            return real_stat(path, *args, **kwargs)

        planner = self.make_planner(destination, mock_logger, workers=workers)

        with patch('datesort.file_ops.os.stat', side_effect=stat_with_denied):
            with pytest.raises(MetadataUnavailableError) as exc_info:
                planner.plan(source)

        assert exc_info.value.path == denied
        assert isinstance(exc_info.value.cause, PermissionError)

    def test_plan_symlinks(self, source, destination, mock_logger):
        """Ссылка на файл датируется по цели, ссылка на каталог пропускается."""
        target = source.parent / "outside.txt"
        target.write_text("target")
        set_mtime(target, 2024, 3, 5)
        file_link = source / "link.txt"
        file_link.symlink_to(target)
        # Собственное время ссылки отличается от времени цели
        link_ts = datetime(2023, 1, 1, 12, tzinfo=timezone.utc).timestamp()
        os.utime(file_link, (link_ts, link_ts), follow_symlinks=False)
        dir_link = source / "sublink"
        dir_link.symlink_to(source / "sub", target_is_directory=True)

        plan = self.make_planner(destination, mock_logger).plan(source)

        by_source = {r.source: r for r in plan}
        assert by_source[file_link].date_key == "2024-03-05"
        assert by_source[file_link].destination == destination / "2024-03-05" / "link.txt"
        assert dir_link not in by_source
        assert dir_link in plan.skipped
        assert "2023-01-01" not in plan.buckets

    def test_plan_invalid_timestamp(self, source, destination, mock_logger):
        """Время вне диапазона - MetadataUnavailableError."""
        file_ops = FileOps(mock_logger)
        planner = Planner(destination, file_ops, mock_logger)

        with patch.object(file_ops, 'get_modified_time', return_value=1e20):
            with pytest.raises(MetadataUnavailableError):
                planner.plan(source)

    def test_plan_directory_creation_failure(self, source, destination, mock_logger):
        """Ошибка создания каталога прерывает планирование."""
        file_ops = FileOps(mock_logger)
        planner = Planner(destination, file_ops, mock_logger, workers=4)

        error = DirectoryCreationError("Ошибка создания каталога по дате", destination / "2024-03-01",
                                       PermissionError(13, "Permission denied"))
        with patch.object(file_ops, 'create_directory', side_effect=error):
            with pytest.raises(DirectoryCreationError):
                planner.plan(source)

    def test_plan_local_time(self, temp_dir, destination, mock_logger):
        """С use_local_time каталог назван по локальной дате."""
        src = temp_dir / "local"
        src.mkdir()
        path = src / "late.txt"
        path.write_text("x")
        ts = datetime(2024, 3, 1, 23, 30, tzinfo=timezone.utc).timestamp()
        os.utime(path, (ts, ts))

        plan = self.make_planner(destination, mock_logger, use_local_time=True).plan(src)

        expected = datetime.fromtimestamp(ts).strftime("%Y-%m-%d")
        assert plan.relocations[0].date_key == expected
        assert (destination / expected).is_dir()

    def test_read_entry(self, source, destination, mock_logger):
        """Чтение элемента каталога."""
        planner = self.make_planner(destination, mock_logger)

        file_entry = planner.read_entry(source / "a.txt")
        dir_entry = planner.read_entry(source / "sub")

        assert file_entry.is_dir is False
        assert file_entry.date_key == "2024-03-01"
        assert dir_entry.is_dir is True
        assert dir_entry.modified is None
