"""
Модуль планирования раскладки.

Читает непосредственное содержимое исходного каталога, определяет дату
изменения каждого файла и строит план пар (источник, назначение) вида
``dst/<YYYY-MM-DD>/<имя файла>``. Каталоги по датам создаются во время
планирования, ровно один раз на дату даже при параллельной работе.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

try:
    from .file_ops import FileOps, DestinationCollisionError, MetadataUnavailableError
    from .logger import DateSortLogger
except ImportError:
    from file_ops import FileOps, DestinationCollisionError, MetadataUnavailableError
    from logger import DateSortLogger


def format_date_key(dt: datetime) -> str:
    """Форматирует дату как YYYY-MM-DD (год всегда из четырех цифр)."""
    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"


def resolve_modified(timestamp: float, use_local_time: bool = False) -> datetime:
    """
    Переводит время изменения в дату с часовым поясом.

    По умолчанию используется UTC; при use_local_time - локальный пояс.

    Raises:
        ValueError, OverflowError, OSError: Если время вне допустимого диапазона
    """
    if use_local_time:
        return datetime.fromtimestamp(timestamp).astimezone()
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


@dataclass(frozen=True)
class Entry:
    """Элемент исходного каталога."""
    path: Path
    name: str
    is_dir: bool
    modified: Optional[datetime] = None

    @property
    def date_key(self) -> str:
        if self.modified is None:
            raise ValueError(f"У элемента {self.path} нет даты изменения")
        return format_date_key(self.modified)


@dataclass(frozen=True)
class PlannedRelocation:
    """Одна пара (источник, назначение)."""
    source: Path
    destination: Path
    date_key: str


@dataclass
class RelocationPlan:
    """План раскладки: пары и каталоги по датам, созданные при планировании."""
    relocations: List[PlannedRelocation] = field(default_factory=list)
    buckets: Dict[str, Path] = field(default_factory=dict)
    skipped: List[Path] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.relocations)

    def __iter__(self) -> Iterator[PlannedRelocation]:
        return iter(self.relocations)

    @property
    def entries_scanned(self) -> int:
        return len(self.relocations) + len(self.skipped)


class BucketRegistry:
    """
    Каталоги по датам, созданные за один запуск.

    Проверка "уже создан?" и создание каталога выполняются под одной
    блокировкой: на каждую дату приходится не больше одного вызова
    создания, и ни один поток не получит путь раньше, чем каталог
    появится на диске.
    """

    def __init__(self, destination_root: Path, file_ops: FileOps, logger: DateSortLogger):
        self.destination_root = Path(destination_root)
        self.file_ops = file_ops
        self.logger = logger
        self._buckets: Dict[str, Path] = {}
        self._lock = threading.Lock()

    def ensure(self, date_key: str) -> Path:
        """
        Возвращает каталог для даты, создавая его при первом обращении.

        Raises:
            DirectoryCreationError: Если каталог создать не удалось
        """
        with self._lock:
            path = self._buckets.get(date_key)
            if path is None:
                path = self.file_ops.create_directory(self.destination_root / date_key)
                self._buckets[date_key] = path
                self.logger.log_bucket_created(date_key, path)
            return path

    def snapshot(self) -> Dict[str, Path]:
        with self._lock:
            return dict(self._buckets)

    def __contains__(self, date_key: str) -> bool:
        with self._lock:
            return date_key in self._buckets

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)


class Planner:
    """Строит план раскладки для исходного каталога."""

    def __init__(self, destination_root: Path, file_ops: FileOps, logger: DateSortLogger,
                 workers: int = 1, use_local_time: bool = False,
                 registry: Optional[BucketRegistry] = None):
        """
        Инициализация планировщика.

        Args:
            destination_root: Корень назначения (уже существует)
            file_ops: Операции с файловой системой
            logger: Логгер
            workers: Количество потоков (1 - последовательно)
            use_local_time: Брать дату в локальном поясе вместо UTC
            registry: Реестр каталогов по датам (по умолчанию новый)
        """
        self.destination_root = Path(destination_root)
        self.file_ops = file_ops
        self.logger = logger
        self.workers = workers
        self.use_local_time = use_local_time
        self.registry = registry or BucketRegistry(self.destination_root, file_ops, logger)

    def read_entry(self, path: Path) -> Entry:
        """
        Читает метаданные элемента каталога.

        Raises:
            MetadataUnavailableError: Если время изменения не читается
        """
        path = Path(path)
        if self.file_ops.is_directory(path):
            return Entry(path=path, name=path.name, is_dir=True)

        timestamp = self.file_ops.get_modified_time(path)
        try:
            modified = resolve_modified(timestamp, self.use_local_time)
        except (ValueError, OverflowError, OSError) as e:
            raise MetadataUnavailableError("Некорректное время изменения", path, e) from e

        return Entry(path=path, name=path.name, is_dir=False, modified=modified)

    def plan_entry(self, path: Path) -> Tuple[Entry, Optional[PlannedRelocation]]:
        """
        Планирует один элемент: для каталога пары нет.

        Raises:
            DestinationCollisionError: Если целевой файл уже существует
        """
        entry = self.read_entry(path)
        if entry.is_dir:
            self.logger.log_entry_skipped(entry.path)
            return entry, None

        date_key = entry.date_key
        destination = self.destination_root / date_key / entry.name
        if self.file_ops.destination_exists(destination):
            raise DestinationCollisionError("Целевой файл уже существует", destination)

        self.registry.ensure(date_key)
        return entry, PlannedRelocation(entry.path, destination, date_key)

    def plan(self, source: Path) -> RelocationPlan:
        """
        Строит полный план для исходного каталога.

        Любая ошибка прерывает планирование; каталоги, созданные до
        ошибки, остаются на диске.

        Returns:
            RelocationPlan: План раскладки
        """
        paths = self.file_ops.list_entries(source)

        if self.workers > 1 and len(paths) > 1:
            results = self._plan_parallel(paths)
        else:
            results = [self.plan_entry(path) for path in paths]

        plan = RelocationPlan()
        destinations = set()
        for entry, relocation in results:
            if relocation is None:
                plan.skipped.append(entry.path)
                continue
            if relocation.destination in destinations:
                raise DestinationCollisionError("Два файла указывают на один путь", relocation.destination)
            destinations.add(relocation.destination)
            plan.relocations.append(relocation)

        plan.buckets = self.registry.snapshot()
        self.logger.log_plan_ready(len(plan), len(plan.buckets))
        return plan

    def _plan_parallel(self, paths: List[Path]) -> List[Tuple[Entry, Optional[PlannedRelocation]]]:
        """Планирует элементы в пуле потоков; первая ошибка отменяет оставшиеся."""
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            futures = [pool.submit(self.plan_entry, path) for path in paths]
            try:
                for future in as_completed(futures):
                    future.result()
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

        return [future.result() for future in futures]
