"""Core application for the clinic backend.

This package contains models, serializers, services, views and route
registrations for accounts, appointments and medical records.
"""
