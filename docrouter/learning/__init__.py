"""Learned routing patterns"""
