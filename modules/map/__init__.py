"""
Карта: регионы, маршрут дня, геолокация
"""
