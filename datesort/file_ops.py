"""
Модуль для операций с файловой системой.

Содержит иерархию ошибок приложения и примитивы, которыми пользуются
планировщик и исполнитель: чтение каталога и метаданных, создание
каталогов, копирование и перемещение файлов.
"""

import os
import shutil
import stat
from pathlib import Path
from typing import List, Optional

try:
    from .logger import DateSortLogger
except ImportError:
    from logger import DateSortLogger


class FileOperationError(Exception):
    """Базовое исключение для ошибок операций с файлами."""

    def __init__(self, message: str, path: Path, cause: Optional[BaseException] = None):
        self.path = Path(path)
        self.cause = cause
        if cause is not None:
            message = f"{message}: {path} ({cause})"
        else:
            message = f"{message}: {path}"
        super().__init__(message)


class InvalidSourceError(FileOperationError):
    """Исходный каталог не существует или не читается."""
    pass


class MetadataUnavailableError(FileOperationError):
    """Не удалось прочитать время изменения файла."""
    pass


class DestinationCollisionError(FileOperationError):
    """Целевой путь уже существует."""
    pass


class DirectoryCreationError(FileOperationError):
    """Не удалось создать каталог."""
    pass


class RelocationError(FileOperationError):
    """Ошибка копирования или перемещения файла."""

    def __init__(self, message: str, path: Path, cause: Optional[BaseException] = None,
                 completed: int = 0):
        super().__init__(message, path, cause)
        self.completed = completed


class FileOps:
    """Класс для операций с файловой системой."""

    def __init__(self, logger: DateSortLogger):
        """
        Инициализация операций с файлами.

        Args:
            logger: Логгер для записи операций
        """
        self.logger = logger

    def validate_source(self, source: Path) -> Path:
        """
        Проверяет, что исходный каталог существует.

        Raises:
            InvalidSourceError: Если каталога нет или это не каталог
        """
        source = Path(source)
        if not source.exists():
            raise InvalidSourceError("Исходный каталог не существует", source)
        if not source.is_dir():
            raise InvalidSourceError("Источник не является каталогом", source)
        return source

    def ensure_destination_root(self, destination: Path) -> Path:
        """
        Создает корень назначения рекурсивно, если его нет.

        Raises:
            DirectoryCreationError: Если каталог создать не удалось
        """
        destination = Path(destination)
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationError("Ошибка создания каталога назначения", destination, e) from e
        return destination

    def list_entries(self, source: Path) -> List[Path]:
        """
        Возвращает непосредственное содержимое каталога (без рекурсии).

        Raises:
            InvalidSourceError: Если каталог не читается
        """
        try:
            with os.scandir(source) as it:
                paths = [Path(entry.path) for entry in it]
        except OSError as e:
            raise InvalidSourceError("Ошибка чтения исходного каталога", source, e) from e

        paths.sort()
        return paths

    def is_directory(self, path: Path) -> bool:
        """
        Проверяет, является ли элемент каталогом (символьные ссылки разыменовываются).

        Raises:
            MetadataUnavailableError: Если метаданные недоступны
        """
        try:
            return stat.S_ISDIR(os.stat(path).st_mode)
        except OSError as e:
            self.logger.log_file_error(path, e)
            raise MetadataUnavailableError("Не удалось прочитать метаданные", path, e) from e

    def get_modified_time(self, path: Path) -> float:
        """
        Возвращает время изменения файла (секунды от эпохи).

        Raises:
            MetadataUnavailableError: Если метаданные недоступны
        """
        try:
            return os.stat(path).st_mtime
        except OSError as e:
            self.logger.log_file_error(path, e)
            raise MetadataUnavailableError("Не удалось прочитать время изменения", path, e) from e

    def destination_exists(self, path: Path) -> bool:
        """Проверяет, занят ли целевой путь (включая битые ссылки)."""
        return os.path.lexists(path)

    def create_directory(self, path: Path) -> Path:
        """
        Создает каталог по дате.

        Уже существующий каталог не считается ошибкой, чтобы повторный
        запуск после частичного сбоя проходил.

        Raises:
            DirectoryCreationError: Если каталог создать не удалось
        """
        path = Path(path)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationError("Ошибка создания каталога по дате", path, e) from e
        return path

    def copy_file(self, source: Path, target: Path) -> Path:
        """
        Копирует файл вместе с метаданными; исходный файл не меняется.

        Raises:
            RelocationError: Если копирование не удалось
        """
        try:
            shutil.copy2(source, target)
        except OSError as e:
            self.logger.log_file_error(source, e)
            raise RelocationError("Ошибка копирования файла", source, e) from e

        self.logger.log_file_relocated("copy", source, target)
        return Path(target)

    def move_file(self, source: Path, target: Path) -> Path:
        """
        Перемещает файл через rename.

        Перемещение между файловыми системами не эмулируется копированием:
        ошибку ОС получает вызывающий код.

        Raises:
            RelocationError: Если перемещение не удалось
        """
        try:
            os.rename(source, target)
        except OSError as e:
            self.logger.log_file_error(source, e)
            raise RelocationError("Ошибка перемещения файла", source, e) from e

        self.logger.log_file_relocated("move", source, target)
        return Path(target)


def create_file_ops(logger: DateSortLogger) -> FileOps:
    """Удобная функция для создания объекта операций с файлами."""
    return FileOps(logger)
