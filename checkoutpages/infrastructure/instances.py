"""
Módulo de inicialização do serviço de dados.
Deve ser importado somente depois que o Django estiver configurado.
"""

from .repositories import ServicoDadosDjango as ServicoDados

# Instância global do serviço de dados
servico_dados = ServicoDados()
