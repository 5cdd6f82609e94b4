# src/shared/__init__.py
"""
Общий код сервиса.

Модули:
- models: Pydantic-модели запросов, ответов и обновлений локации
"""

__all__: list[str] = []
