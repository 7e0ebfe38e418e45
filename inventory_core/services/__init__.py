"""
Inventory Services
Business logic of the inventory consistency core
"""
