"""
Blueprints HTTP de Camstream
"""
