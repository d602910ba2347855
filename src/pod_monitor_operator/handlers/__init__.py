"""
Handlers package - Contains all Kopf event handlers.

This package organizes handlers by watched resource:
- pods.py: Container restart detection for all pods
- secrets.py: Certificate expiry of the identity issuer secret
"""
