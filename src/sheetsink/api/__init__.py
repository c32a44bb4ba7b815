"""HTTP API for analyzing and uploading files."""
