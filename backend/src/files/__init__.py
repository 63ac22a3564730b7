"""File records: upload registration, owner edits and popularity counters"""
