"""
Services transverses de Camstream (logging, monitoring)
"""
