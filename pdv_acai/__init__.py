# ==============================================================================
# PDV AÇAÍ - Núcleo do ponto de venda da sorveteria/açaiteria
# ==============================================================================
# Preços, carrinho, comandas, finalização de vendas e relatórios.
# ==============================================================================

__version__ = '1.0.0'
