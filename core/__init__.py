"""
Ядро: база данных, хранилища документов и файлов, аутентификация
"""
