"""
Вход, регистрация и профиль пользователя
"""
