"""
Модуль бизнес-логики раскладки файлов по датам.

Объединяет проверку аргументов, планирование и выполнение плана в один
проход: источник проверяется, корень назначения создается, планировщик
строит план (создавая каталоги по датам), исполнитель его применяет.
"""

from datetime import datetime
from typing import Dict, Optional

try:
    from .config_loader import Config
    from .executor import Executor, RelocationMode
    from .file_ops import FileOps, FileOperationError, RelocationError
    from .logger import DateSortLogger
    from .planner import Planner, RelocationPlan
except ImportError:
    from config_loader import Config
    from executor import Executor, RelocationMode
    from file_ops import FileOps, FileOperationError, RelocationError
    from logger import DateSortLogger
    from planner import Planner, RelocationPlan


class RelocationStats:
    """Класс для хранения статистики запуска."""

    def __init__(self, mode: RelocationMode = RelocationMode.COPY):
        self.mode = mode
        self.entries_scanned = 0
        self.skipped_dirs = 0
        self.planned_files = 0
        self.buckets_created = 0
        self.relocated_files = 0
        self.start_time = None
        self.end_time = None

    def get_duration(self) -> Optional[float]:
        """Возвращает продолжительность запуска в секундах."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def to_dict(self) -> Dict:
        """Преобразует статистику в словарь."""
        return {
            'mode': self.mode.value,
            'entries_scanned': self.entries_scanned,
            'skipped_dirs': self.skipped_dirs,
            'planned_files': self.planned_files,
            'buckets_created': self.buckets_created,
            'relocated_files': self.relocated_files,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': self.get_duration()
        }


class Relocator:
    """Основной класс раскладки файлов."""

    def __init__(self, config: Config, logger: DateSortLogger):
        """
        Инициализация раскладчика.

        Args:
            config: Конфигурация приложения
            logger: Логгер для записи операций
        """
        self.config = config
        self.logger = logger
        self.file_ops = FileOps(logger)
        self.mode = RelocationMode.from_flag(config.relocator.move_files)
        self.stats = RelocationStats(self.mode)
        self.plan: Optional[RelocationPlan] = None

    def run(self) -> RelocationStats:
        """
        Выполняет раскладку целиком.

        Returns:
            RelocationStats: Статистика запуска

        Raises:
            FileOperationError: Любая ошибка прерывает запуск без отката
        """
        self.stats.start_time = datetime.now()
        paths = self.config.paths
        workers = self.config.relocator.workers

        try:
            # Источник проверяется до любых изменений на диске
            source = self.file_ops.validate_source(paths.source)
            destination = self.file_ops.ensure_destination_root(paths.destination)

            self.logger.log_run_start(source, destination, self.mode.value, workers)

            self.plan = self._build_plan(source, destination)
            self._execute_plan(self.plan)

        except FileOperationError as e:
            self.stats.end_time = datetime.now()
            self.logger.log_critical_error("Раскладка прервана", e)
            raise

        self.stats.end_time = datetime.now()
        self.logger.log_run_end(
            relocated=self.stats.relocated_files,
            buckets=self.stats.buckets_created,
            skipped=self.stats.skipped_dirs
        )
        return self.stats

    def _build_plan(self, source, destination) -> RelocationPlan:
        planner = Planner(
            destination,
            self.file_ops,
            self.logger,
            workers=self.config.relocator.workers,
            use_local_time=self.config.relocator.use_local_time
        )
        try:
            plan = planner.plan(source)
        finally:
            # Каталоги, созданные до ошибки, остаются на диске
            self.stats.buckets_created = len(planner.registry)

        self.stats.entries_scanned = plan.entries_scanned
        self.stats.skipped_dirs = len(plan.skipped)
        self.stats.planned_files = len(plan)
        return plan

    def _execute_plan(self, plan: RelocationPlan) -> None:
        executor = Executor(
            self.mode,
            self.file_ops,
            self.logger,
            workers=self.config.relocator.workers
        )
        try:
            result = executor.execute(plan)
        except RelocationError as e:
            self.stats.relocated_files = e.completed
            if e.completed:
                self.logger.log_warning(
                    f"Разложено {e.completed} из {len(plan)} файлов до ошибки, откат не выполняется"
                )
            raise

        self.stats.relocated_files = result.count


def create_relocator(config: Config, logger: DateSortLogger) -> Relocator:
    """Удобная функция для создания объекта раскладчика."""
    return Relocator(config, logger)
