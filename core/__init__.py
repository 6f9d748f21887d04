"""
Core modules for Media Pipeline

- constants / enums: shared values
- geometry: crop rectangle computation
- filters: brightness/contrast/saturation stack and its canonical expression
- compositor: crop -> resize -> filter -> JPEG rasterization
- storage: object storage backend
- media_repository: relational store for library records
- identity: owner identity providers
- image: codec helpers and source loading
"""
