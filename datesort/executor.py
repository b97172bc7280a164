"""
Модуль выполнения плана раскладки.

Каждая пара плана копируется или перемещается независимо от остальных.
Первая ошибка прерывает оставшуюся работу; уже разложенные файлы не
откатываются.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

try:
    from .file_ops import FileOps, RelocationError
    from .logger import DateSortLogger
    from .planner import PlannedRelocation, RelocationPlan
except ImportError:
    from file_ops import FileOps, RelocationError
    from logger import DateSortLogger
    from planner import PlannedRelocation, RelocationPlan


class RelocationMode(Enum):
    """Режим раскладки на весь запуск."""
    COPY = 'copy'
    MOVE = 'move'

    @classmethod
    def from_flag(cls, move_files: bool) -> 'RelocationMode':
        return cls.MOVE if move_files else cls.COPY


@dataclass
class ExecutionStats:
    """Результат выполнения плана."""
    mode: RelocationMode
    relocated: List[PlannedRelocation] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.relocated)


class Executor:
    """Применяет план раскладки."""

    def __init__(self, mode: RelocationMode, file_ops: FileOps, logger: DateSortLogger,
                 workers: int = 1):
        """
        Инициализация исполнителя.

        Args:
            mode: Копирование или перемещение
            file_ops: Операции с файловой системой
            logger: Логгер
            workers: Количество потоков (1 - последовательно)
        """
        self.mode = mode
        self.file_ops = file_ops
        self.logger = logger
        self.workers = workers

    def apply(self, relocation: PlannedRelocation) -> PlannedRelocation:
        """
        Применяет одну пару.

        Raises:
            RelocationError: Если копирование или перемещение не удалось
        """
        if self.mode is RelocationMode.MOVE:
            self.file_ops.move_file(relocation.source, relocation.destination)
        else:
            self.file_ops.copy_file(relocation.source, relocation.destination)
        return relocation

    def execute(self, plan: RelocationPlan) -> ExecutionStats:
        """
        Применяет весь план.

        Returns:
            ExecutionStats: Разложенные файлы

        Raises:
            RelocationError: При первой ошибке; атрибут completed содержит
                количество файлов, разложенных до остановки
        """
        stats = ExecutionStats(mode=self.mode)
        self.logger.log_system_info(f"Выполнение плана: {len(plan)} файлов, режим {self.mode.value}")

        if self.workers > 1 and len(plan) > 1:
            self._execute_parallel(plan, stats)
        else:
            for relocation in plan:
                try:
                    stats.relocated.append(self.apply(relocation))
                except RelocationError as e:
                    e.completed = stats.count
                    raise

        return stats

    def _execute_parallel(self, plan: RelocationPlan, stats: ExecutionStats) -> None:
        pool = ThreadPoolExecutor(max_workers=self.workers)
        futures = {pool.submit(self.apply, relocation): relocation for relocation in plan}
        failure: Optional[RelocationError] = None

        try:
            for future in as_completed(futures):
                try:
                    future.result()
                except RelocationError as e:
                    failure = e
                    break
        finally:
            for future in futures:
                future.cancel()
            # Запущенные задачи завершаются до подсчета
            pool.shutdown(wait=True)

        stats.relocated = [
            relocation for future, relocation in futures.items()
            if not future.cancelled() and future.exception() is None
        ]

        if failure is not None:
            failure.completed = stats.count
            raise failure
