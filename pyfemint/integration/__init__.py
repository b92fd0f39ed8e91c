from .quadrature import (IntegrationPoint, IntegrationRule, IntegrationRules,
                         INT_RULES, REFINED_INT_RULES, gauss_legendre, volume,
                         refined_volume)
__all__ = ['IntegrationPoint', 'IntegrationRule', 'IntegrationRules',
           'INT_RULES', 'REFINED_INT_RULES', 'gauss_legendre', 'volume',
           'refined_volume']
