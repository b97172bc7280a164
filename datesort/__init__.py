"""
DateSort

Утилита раскладки файлов каталога по подкаталогам по дате изменения (YYYY-MM-DD).
"""

__version__ = "1.0.0"
__description__ = "Utility for sorting files into date-named directories by modification time"
