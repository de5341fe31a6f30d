"""Recommendation engine for StoreRec.

This module contains the store interfaces, user similarity, candidate
ranking, diversity selection and the strategy-selecting engine that turns a
behavior log and a catalog into product recommendations.
"""
