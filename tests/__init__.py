"""
Fortress Inventory Test Suite

Tests are organized by import pipeline stage:
- test_import_normalizer.py / test_import_parser.py: reading uploaded tables
- test_import_classifier.py / test_import_gate.py: client pre-scan and confirmation
- test_import_references.py / test_import_engine.py: server reconciliation
- test_import_routes.py / test_management.py: HTTP API and CLI surfaces
"""
