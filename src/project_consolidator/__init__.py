"""
Project Consolidator - Duplicate Project Folder Consolidation Utility

A CLI tool for gathering scattered copies of project folders into a single,
deduplicated, date-organized layout.

This package provides functionality to:
- Crawl a storage volume for project folders (recognized by marker files)
- Group copies of the same logical project by a derived identity key
- Pick the most recent copy (or an operator's choice) as the primary
- Plan dated or flat destinations, nesting older copies under .versions
- Move or copy every project, tolerating per-item failures
- Write a JSON manifest (and optional CSV report) of the final layout
"""

# Product identity constants
PRODUCT_NAME = "Project Consolidator"
PRODUCT_VERSION = "1.0.0"
PRODUCT_DESCRIPTION = "Duplicate Project Folder Consolidation Utility"

__version__ = PRODUCT_VERSION
__author__ = "Project Consolidator Team"
