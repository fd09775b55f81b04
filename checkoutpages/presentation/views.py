# checkoutpages/presentation/views.py
import logging
from dataclasses import replace

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from checkoutpages.core import dependency_injection as di
from checkoutpages.core.exceptions import (
    BaseErroCore,
    ConflitoError,
    DadosClienteInvalidosError,
    DadosInvalidosError,
    FalhaDeRedeError,
    ItemNaoEncontradoError,
    PermissaoNegadaError,
)
from checkoutpages.core.mappers import pedido_to_dict, resumo_to_dict
from checkoutpages.core.slug import SlugAssignment
from .serializers import (
    AvisoSerializer,
    CatalogProductSerializer,
    CheckoutPageSerializer,
    PedidoSerializer,
    pagina_para_dados,
    produto_para_dados,
)

logger = logging.getLogger(__name__)


# ====================================================================
# TRADUÇÃO DOS ERROS DA CORE PARA HTTP
# ====================================================================

STATUS_POR_ERRO = (
    (DadosInvalidosError, status.HTTP_400_BAD_REQUEST),
    (ConflitoError, status.HTTP_409_CONFLICT),
    (PermissaoNegadaError, status.HTTP_403_FORBIDDEN),
    (ItemNaoEncontradoError, status.HTTP_404_NOT_FOUND),
    (FalhaDeRedeError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def _erro_para_dados(erro: BaseErroCore) -> dict:
    dados = {'codigo': erro.codigo, 'message': erro.message}
    for atributo in ('campo', 'product_id', 'element_id'):
        valor = getattr(erro, atributo, None)
        if valor is not None:
            dados[atributo] = valor
    return dados


def tratar_erro_core(erro: BaseErroCore) -> Response:
    """Converte uma exceção da Core na resposta HTTP correspondente."""
    dados = _erro_para_dados(erro)
    if isinstance(erro, DadosClienteInvalidosError):
        dados['erros'] = [_erro_para_dados(e) for e in erro.erros]

    for classe, codigo_http in STATUS_POR_ERRO:
        if isinstance(erro, classe):
            logger.info("Requisição recusada (%s): %s", erro.codigo, erro.message)
            return Response(dados, status=codigo_http)

    logger.error("Erro da Core sem tradução HTTP: %r", erro)
    return Response(dados, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _usuario_id(request) -> str:
    return str(request.user.pk)


# ====================================================================
# 1. API DO CONSTRUTOR DE PÁGINAS
# ====================================================================

class PaginasAPIView(APIView):
    """
    Lista as páginas do usuário logado e cria novas páginas.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        listar_uc = di.get_listar_paginas_use_case(_usuario_id(request))
        try:
            paginas = listar_uc.executar(_usuario_id(request))
        except BaseErroCore as e:
            return tratar_erro_core(e)

        if paginas is None:
            return Response(
                {'message': 'Já existe uma busca em andamento. Tente novamente.'},
                status=status.HTTP_429_TOO_MANY_REQUESTS,
            )
        return Response([pagina_para_dados(p) for p in paginas])

    def post(self, request):
        """
        Cria uma página. Sem slug informado, ele é derivado do título.
        Se o slug já estiver em uso, nada é gravado: a resposta 409 traz a
        página com o slug sugerido para o reenvio.
        """
        serializer = CheckoutPageSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        pagina = serializer.to_entity(_usuario_id(request))
        atribuicao = SlugAssignment()
        if pagina.slug:
            atribuicao.edit_slug(pagina.slug)
        else:
            pagina = replace(pagina, slug=atribuicao.change_title(pagina.title))

        return _responder_salvamento(pagina, request, atribuicao, status.HTTP_201_CREATED)


class PaginaDetalheAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pagina_id):
        try:
            pagina = di.get_detalhar_pagina_use_case().executar(str(pagina_id), _usuario_id(request))
        except BaseErroCore as e:
            return tratar_erro_core(e)
        return Response(pagina_para_dados(pagina))

    def put(self, request, pagina_id):
        serializer = CheckoutPageSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        pagina = serializer.to_entity(_usuario_id(request), pagina_id=str(pagina_id))
        atribuicao = SlugAssignment.para_pagina_existente(pagina.slug)
        return _responder_salvamento(pagina, request, atribuicao, status.HTTP_200_OK)

    def delete(self, request, pagina_id):
        try:
            di.get_deletar_pagina_use_case().executar(str(pagina_id), _usuario_id(request))
        except BaseErroCore as e:
            return tratar_erro_core(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


def _responder_salvamento(pagina, request, atribuicao, status_sucesso) -> Response:
    salvar_uc = di.get_salvar_pagina_use_case()
    try:
        resultado = salvar_uc.executar(pagina, _usuario_id(request), atribuicao)
    except BaseErroCore as e:
        return tratar_erro_core(e)

    if not resultado.salvo:
        return Response({
            'codigo': 'SlugInUse',
            'message': resultado.avisos[0].mensagem,
            'slug_sugerido': resultado.pagina.slug,
            'avisos': AvisoSerializer(resultado.avisos, many=True).data,
            'pagina': pagina_para_dados(resultado.pagina),
        }, status=status.HTTP_409_CONFLICT)
    return Response(pagina_para_dados(resultado.pagina), status=status_sucesso)


class DuplicarPaginaAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pagina_id):
        try:
            copia = di.get_duplicar_pagina_use_case().executar(str(pagina_id), _usuario_id(request))
        except BaseErroCore as e:
            return tratar_erro_core(e)
        return Response(pagina_para_dados(copia), status=status.HTTP_201_CREATED)


class VerificarSlugAPIView(APIView):
    """
    Verificação consultiva de disponibilidade do slug (?slug=...).
    'disponivel' é null quando a consulta falhou.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        slug = request.query_params.get('slug', '').strip()
        if not slug:
            return Response({'message': "Informe o parâmetro 'slug'."}, status=status.HTTP_400_BAD_REQUEST)

        resultado = di.get_verificar_slug_use_case().executar(slug, _usuario_id(request))
        aviso = resultado['aviso']
        return Response({**resultado, 'aviso': AvisoSerializer(aviso).data if aviso else None})


# ====================================================================
# 2. API DA VITRINE (PÚBLICA)
# ====================================================================

class CheckoutPublicoAPIView(APIView):
    """Estrutura renderizada de uma página ativa, pronta para a vitrine."""
    permission_classes = [AllowAny]

    def get(self, request, slug):
        try:
            return Response(di.get_carregar_pagina_publica_use_case().executar(slug))
        except BaseErroCore as e:
            return tratar_erro_core(e)


class FinalizarPedidoAPIView(APIView):
    permission_classes = [AllowAny]

    def post(self, request, slug):
        serializer = PedidoSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            pedido = di.get_finalizar_pedido_use_case().executar(
                slug,
                serializer.to_selection(),
                serializer.validated_data['formulario'],
            )
        except BaseErroCore as e:
            return tratar_erro_core(e)
        return Response(pedido_to_dict(pedido), status=status.HTTP_201_CREATED)


# ====================================================================
# 3. API DE ANÁLISE E CATÁLOGO
# ====================================================================

class AnalyticsAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        periodo = request.query_params.get('periodo', '7d')
        try:
            resumo = di.get_resumo_analitico_use_case().executar(_usuario_id(request), periodo)
        except BaseErroCore as e:
            return tratar_erro_core(e)
        return Response(resumo_to_dict(resumo))


class ProdutosAPIView(APIView):
    """Catálogo de produtos do usuário logado."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        try:
            produtos = di.get_gerenciar_produtos_use_case().listar(_usuario_id(request))
        except BaseErroCore as e:
            return tratar_erro_core(e)
        return Response([produto_para_dados(p) for p in produtos])

    def post(self, request):
        serializer = CatalogProductSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            produto = di.get_gerenciar_produtos_use_case().salvar(
                serializer.to_entity(_usuario_id(request)), _usuario_id(request))
        except BaseErroCore as e:
            return tratar_erro_core(e)
        return Response(produto_para_dados(produto), status=status.HTTP_201_CREATED)


class ProdutoDetalheAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, produto_id):
        try:
            produto = di.get_gerenciar_produtos_use_case().detalhar(str(produto_id), _usuario_id(request))
        except BaseErroCore as e:
            return tratar_erro_core(e)
        return Response(produto_para_dados(produto))

    def put(self, request, produto_id):
        serializer = CatalogProductSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            produto = di.get_gerenciar_produtos_use_case().salvar(
                serializer.to_entity(_usuario_id(request), produto_id=str(produto_id)), _usuario_id(request))
        except BaseErroCore as e:
            return tratar_erro_core(e)
        return Response(produto_para_dados(produto))

    def delete(self, request, produto_id):
        try:
            di.get_gerenciar_produtos_use_case().deletar(str(produto_id), _usuario_id(request))
        except BaseErroCore as e:
            return tratar_erro_core(e)
        return Response(status=status.HTTP_204_NO_CONTENT)
