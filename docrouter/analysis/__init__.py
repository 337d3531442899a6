"""File analysis"""
