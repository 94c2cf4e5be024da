"""
Объекты (obras): модели, репозиторий, сервис, инактивация
"""
