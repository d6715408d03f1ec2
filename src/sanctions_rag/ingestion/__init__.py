"""
Ingestion — discovery, parsing, chunking and persistence of SIMV records.

Converts the published sanction files (CSV registers and PDF resolutions)
into chunks stored in the vector database, recording each source in a
ledger so re-runs only pick up new files.
"""
