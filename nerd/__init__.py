"""
nerd - neural networks trained and served on demand.

Clients push time-series points, the service trains a small multilayer
perceptron per output label once enough data has accumulated (picking its
hyperparameters with a genetic search) and answers evaluation requests
against the stored networks.
"""

__version__ = '0.1.0'
