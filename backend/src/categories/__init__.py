"""File categories (tree of reference entities)"""
