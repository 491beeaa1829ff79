"""Direct-query repositories. Every function filters by an explicit tenant scope."""
