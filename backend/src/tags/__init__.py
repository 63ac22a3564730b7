"""File tags (flat reference entities)"""
