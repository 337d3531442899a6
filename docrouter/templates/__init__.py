"""Folder templates and their on-disk materialisation"""
