"""
Панель показателей: агрегация, цели по месяцам, экспорт в Excel
"""
