"""Interfaces/abstracciones del Core.

Contratos (Protocol) que implementan adaptadores concretos; el Core depende
de abstracciones, no del binario real.
"""
