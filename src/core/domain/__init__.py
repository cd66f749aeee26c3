"""Dominio de la capa de acceso a la API.

Endpoints, modelos Pydantic v2 y la taxonomía de `ApiError`. Nada aquí hace
I/O; `adapters` se encarga del transporte y la persistencia.
"""
