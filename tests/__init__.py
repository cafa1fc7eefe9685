"""
Test Suite for the Processor Annotation Scanner
===============================================

Test Structure:
    - test_frontend.py: Source decoding and syntax diagnostics
    - test_arguments.py: Positional/keyword argument merging
    - test_builders.py: Descriptor building and value coercion
    - test_walker.py: End-to-end annotation parsing
    - test_scanner.py: Repository scanner, configuration and CLI
"""

__version__ = "1.0.0"
