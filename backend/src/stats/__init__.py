"""Read-only statistics over files, users and the audit ledger"""
