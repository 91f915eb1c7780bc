"""Analyses over project trees."""
