"""
Service layer for Media Pipeline

- metadata_probe: natural dimensions and byte size lookups
- persistence_gateway: storage + record mutations
- library_state: preview session reducer
- library_controller: library and editor orchestration
- controller_registry: one controller per owner
"""
