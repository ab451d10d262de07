"""
ETL Pipeline Package

Syncs app data from a Feishu spreadsheet into a JSON document on OSS.

Modules:
- client: Shared Feishu HTTP client
- auth: Tenant access token exchange
- extract: Sheet resolution and range reads
- transform: Row-to-record normalization
- load: Document assembly, local write and upload
- run_etl: Pipeline orchestration and CLI
"""

__version__ = "1.0.0"
__author__ = "Data Engineering Team"
