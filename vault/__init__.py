"""
FileVault client core: upload queue, batch uploads, result views and statistics.
"""
