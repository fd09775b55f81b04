class BaseErroCore(Exception):
    """Classe base para todas as exceções da Camada Core."""
    codigo = 'CoreError'
    mensagem_padrao = "Erro inesperado."

    def __init__(self, message=None):
        self.message = message or self.mensagem_padrao
        super().__init__(self.message)


# ===============================================
# ERROS DE VALIDAÇÃO (detectáveis antes do envio)
# ===============================================

class DadosInvalidosError(BaseErroCore):
    """Erro levantado quando dados inválidos são fornecidos."""
    codigo = 'ValidationError'
    mensagem_padrao = "Os dados fornecidos são inválidos."


class PaginaSemProdutosError(DadosInvalidosError):
    codigo = 'EmptyProducts'
    mensagem_padrao = "Adicione pelo menos um produto à página."


class ErroProdutoMixin:
    """Guarda qual produto causou a falha."""

    def __init__(self, message=None, product_id=None):
        self.product_id = product_id
        super().__init__(message)


class NomeProdutoInvalidoError(ErroProdutoMixin, DadosInvalidosError):
    codigo = 'InvalidProductName'
    mensagem_padrao = "Todos os produtos devem ter um nome."


class PrecoInvalidoError(ErroProdutoMixin, DadosInvalidosError):
    codigo = 'InvalidPrice'
    mensagem_padrao = "O preço do produto deve ser maior que zero."


class UrlInvalidaError(ErroProdutoMixin, DadosInvalidosError):
    codigo = 'InvalidUrl'
    mensagem_padrao = "URL inválida."


class DescontoInvalidoError(ErroProdutoMixin, DadosInvalidosError):
    codigo = 'InvalidDiscount'
    mensagem_padrao = "O desconto deve estar entre 0 e 100."


class TituloInvalidoError(DadosInvalidosError):
    codigo = 'InvalidTitle'
    mensagem_padrao = "Título é obrigatório e deve ter no máximo 255 caracteres."


class SlugInvalidoError(DadosInvalidosError):
    codigo = 'InvalidSlug'
    mensagem_padrao = "Slug só pode conter letras minúsculas, números e hífens (máximo 100)."


class DescricaoInvalidaError(DadosInvalidosError):
    codigo = 'InvalidDescription'
    mensagem_padrao = "Descrição deve ter no máximo 1000 caracteres."


class CampoDesvinculadoError(DadosInvalidosError):
    """Bloco 'text_field' do layout sem campo personalizado correspondente."""
    codigo = 'DanglingFieldReference'
    mensagem_padrao = "O bloco de campo de texto aponta para um campo que não existe."

    def __init__(self, message=None, element_id=None):
        self.element_id = element_id
        super().__init__(message)


class QuantidadeInvalidaError(DadosInvalidosError):
    codigo = 'InvalidQuantity'
    mensagem_padrao = "A quantidade deve ser um inteiro positivo."


class NenhumProdutoSelecionadoError(DadosInvalidosError):
    codigo = 'NoProductSelected'
    mensagem_padrao = "Por favor, selecione pelo menos um produto."


class CampoObrigatorioError(DadosInvalidosError):
    codigo = 'MissingRequiredField'

    def __init__(self, campo: str, message=None):
        self.campo = campo
        super().__init__(message or f"O campo '{campo}' é obrigatório.")


class EmailInvalidoError(DadosInvalidosError):
    codigo = 'InvalidEmail'

    def __init__(self, campo: str = 'email', message=None):
        self.campo = campo
        super().__init__(message or "Email inválido.")


class DadosClienteInvalidosError(DadosInvalidosError):
    """Agrupa todas as falhas de validação do formulário do cliente."""
    codigo = 'CustomerInfoInvalid'

    def __init__(self, erros, message=None):
        self.erros = list(erros)
        super().__init__(message or "Verifique os dados informados.")

    @property
    def campos(self):
        return [erro.campo for erro in self.erros]


# ===============================================
# ERROS DE PERSISTÊNCIA
# ===============================================

class ConflitoError(BaseErroCore):
    """Violação de restrição de unicidade."""
    codigo = 'ConflictError'
    mensagem_padrao = "O registro conflita com outro já existente."


class SlugEmUsoError(ConflitoError):
    codigo = 'SlugInUse'
    mensagem_padrao = "Este slug já está em uso. Escolha outro."


class PermissaoNegadaError(BaseErroCore):
    """Negação pela política de acesso. Não expõe detalhes da política."""
    codigo = 'PermissionDenied'
    mensagem_padrao = "Não autorizado."


class ItemNaoEncontradoError(BaseErroCore):
    """Erro levantado quando um item (genérico) não é encontrado."""
    codigo = 'NotFound'
    mensagem_padrao = "O item solicitado não foi encontrado."


class PaginaNaoEncontradaError(ItemNaoEncontradoError):
    mensagem_padrao = "Página não encontrada ou você não tem permissão para acessá-la."


class PedidoNaoEncontradoError(ItemNaoEncontradoError):
    """Erro específico para Pedidos não encontrados."""
    pass


class ProdutoNaoEncontradoError(ItemNaoEncontradoError):
    mensagem_padrao = "Produto não encontrado."


class FalhaDeRedeError(BaseErroCore):
    """Falha de transporte até o serviço de dados."""
    codigo = 'NetworkError'
    mensagem_padrao = "Não foi possível conectar ao serviço de dados."
