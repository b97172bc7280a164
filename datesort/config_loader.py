"""
Модуль для сборки и валидации конфигурации приложения.

Конфигурация собирается из аргументов командной строки; файлы
конфигурации и переменные окружения не используются.
"""

import os
from argparse import Namespace
from pathlib import Path
from typing import Optional
from dataclasses import dataclass


VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@dataclass
class PathsConfig:
    """Конфигурация путей."""
    source: Path
    destination: Path


@dataclass
class RelocatorConfig:
    """Конфигурация параметров раскладки файлов."""
    move_files: bool = False
    workers: int = 1
    use_local_time: bool = False


@dataclass
class LoggingConfig:
    """Конфигурация логирования."""
    level: str = 'INFO'
    log_file: Optional[Path] = None
    max_log_size: int = 10
    backup_count: int = 5


@dataclass
class Config:
    """Основная конфигурация приложения."""
    paths: PathsConfig
    relocator: RelocatorConfig
    logging: LoggingConfig


def default_workers() -> int:
    """Количество рабочих потоков по умолчанию."""
    return os.cpu_count() or 1


class ConfigLoader:
    """Класс для сборки и валидации конфигурации."""

    def __init__(self, args: Namespace):
        """
        Инициализация загрузчика конфигурации.

        Args:
            args: Разобранные аргументы командной строки
        """
        self.args = args
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """
        Собирает конфигурацию из аргументов.

        Returns:
            Config: Объект конфигурации

        Raises:
            ValueError: Если конфигурация некорректна
        """
        self._config = Config(
            paths=self._load_paths_config(),
            relocator=self._load_relocator_config(),
            logging=self._load_logging_config()
        )

        self._validate_config()
        return self._config

    def _load_paths_config(self) -> PathsConfig:
        """Собирает конфигурацию путей."""
        return PathsConfig(
            source=Path(self.args.src),
            destination=Path(self.args.dst)
        )

    def _load_relocator_config(self) -> RelocatorConfig:
        """Собирает конфигурацию раскладки."""
        workers = getattr(self.args, 'workers', None)
        if workers is None:
            workers = default_workers()

        return RelocatorConfig(
            move_files=bool(getattr(self.args, 'move_files', False)),
            workers=workers,
            use_local_time=bool(getattr(self.args, 'local_time', False))
        )

    def _load_logging_config(self) -> LoggingConfig:
        """Собирает конфигурацию логирования."""
        defaults = LoggingConfig()
        log_file = getattr(self.args, 'log_file', None)
        max_log_size = getattr(self.args, 'max_log_size', None)
        backup_count = getattr(self.args, 'backup_count', None)

        return LoggingConfig(
            level=getattr(self.args, 'log_level', None) or defaults.level,
            log_file=Path(log_file) if log_file else None,
            max_log_size=defaults.max_log_size if max_log_size is None else max_log_size,
            backup_count=defaults.backup_count if backup_count is None else backup_count
        )

    def _validate_config(self) -> None:
        """Валидирует собранную конфигурацию."""
        if not self._config:
            raise ValueError("Конфигурация не загружена")

        if self._config.relocator.workers < 1:
            raise ValueError("Количество потоков должно быть больше 0")

        if self._config.logging.max_log_size <= 0:
            raise ValueError("Размер файла лога должен быть больше 0")

        if self._config.logging.backup_count < 0:
            raise ValueError("Количество резервных копий лога не может быть отрицательным")

        if self._config.logging.level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"Некорректный уровень логирования: {self._config.logging.level}")

    def get_config(self) -> Config:
        """
        Возвращает собранную конфигурацию.

        Raises:
            ValueError: Если конфигурация не загружена
        """
        if self._config is None:
            raise ValueError("Конфигурация не загружена. Вызовите load_config() сначала.")
        return self._config


def load_config(args: Namespace) -> Config:
    """
    Удобная функция для быстрой сборки конфигурации.

    Args:
        args: Разобранные аргументы командной строки

    Returns:
        Config: Объект конфигурации
    """
    loader = ConfigLoader(args)
    return loader.load_config()
