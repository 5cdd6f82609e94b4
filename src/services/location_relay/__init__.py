# src/services/location_relay/__init__.py
"""
Location Relay — сервис live-tracking поездок.

Обеспечивает:
- WebSocket соединения веб- и мобильных клиентов
- Подписки на комнаты поездок/бронирований
- Fan-out обновлений локации подписчикам комнаты
- Фоновую запись локации во внешнее хранилище (fire-and-forget)
"""
