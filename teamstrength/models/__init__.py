"""Dixon-Coles model of football scores.

This module contains the estimation engine and the prediction helpers
built around it.

Available modules:
    - terms: Model terms, specifications and the formula parser
    - design: Design matrices shared by the home and away sides
    - likelihood: Dependence function, likelihood and normalisation
    - optimizer: Minimizer interface and its scipy implementation
    - dixon_coles: Fitting entry points and the fitted model
    - score_matrix: Scoreline tables and outcome probabilities
    - summary: Tidy and augmented data frames of a fitted model
    - utils: Poisson probabilities and team encoding

"""
