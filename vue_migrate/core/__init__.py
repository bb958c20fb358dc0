"""
Core conversion pipeline: SFC splitting, script extraction, body and
template rewriting, and assembly of the ``<script setup>`` output.
"""
