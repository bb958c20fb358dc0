"""
vue-migrate: convert Vue 2 Options API components into Vue 3 <script setup> components.
"""

__version__ = "0.1.0"
