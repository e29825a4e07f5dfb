# DEMAND+ - controle de demandas de manutenção e SIs
__version__ = "1.2.0"
