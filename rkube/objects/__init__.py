"""Cluster resource objects and their dictionary forms."""