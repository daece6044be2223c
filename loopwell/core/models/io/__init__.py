"""
API I/O schemas.

Pydantic request and response models grouped by domain. Request models carry
the validation rules; response models read from entities with
``from_attributes``.
"""
