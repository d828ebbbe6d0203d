from __future__ import annotations

from typing import Dict, List


FRIENDLY_TERMS: Dict[str, str] = {
    "app_name": "AssetTrack Pro",
    "asset": "Ativo",
    "employee": "Colaborador",
    "department": "Departamento",
    "legal_entity": "Empresa",
    "request": "Requisicao",
    "purchase_order": "Pedido de compra",
    "quotation": "Cotacao",
    "audit_session": "Check semestral",
    "maintenance": "Manutencao",
    "tombamento": "Tombamento",
}


MODULE_LABELS: Dict[str, str] = {
    "dashboard": "Diretoria - Dashboard",
    "companies": "Empresas e Departamentos",
    "assets": "Inventario de Ativos",
    "maintenance": "Centro de Manutencao",
    "employees": "Colaboradores (RH)",
    "requests": "Requisicoes",
    "purchase-orders": "Pedidos de Compra",
    "printing": "Gerenciamento de Impressoes",
    "user-management": "Gestao de Usuarios",
    "inventory-check": "Check semestral",
    "accounting": "Contabilidade",
    "system-info": "Dados do Sistema",
}


STATUS_GROUPS: Dict[str, List[Dict[str, str]]] = {
    "ativo": [
        {"key": "Disponível", "label": "Disponivel", "description": "Ativo livre em estoque."},
        {"key": "Em Uso", "label": "Em uso", "description": "Ativo entregue a um colaborador."},
        {"key": "Manutenção", "label": "Em manutencao", "description": "Ativo fora de operacao para reparo."},
        {"key": "Baixado", "label": "Baixado", "description": "Ativo descartado ou perdido."},
        {
            "key": "Pendente Documentos",
            "label": "Pendente documentos",
            "description": "Ativo cadastrado aguardando nota fiscal ou termo.",
        },
    ],
    "requisicao": [
        {"key": "Pendente", "label": "Pendente", "description": "Requisicao aguardando analise."},
        {"key": "Aprovado", "label": "Aprovada", "description": "Requisicao aprovada para separacao."},
        {"key": "Preparando", "label": "Preparando", "description": "Itens em separacao ou compra."},
        {"key": "Entregue", "label": "Entregue", "description": "Itens entregues ao colaborador."},
        {"key": "Cancelado", "label": "Cancelada", "description": "Requisicao encerrada sem entrega."},
        {"key": "Confronto", "label": "Confronto", "description": "Divergencia de auditoria em apuracao."},
    ],
    "compra": [
        {"key": "Pendente", "label": "Cotacao pendente", "description": "Preencher ate tres cotacoes."},
        {"key": "Cotação Aprovada", "label": "Aguardando autorizacao", "description": "Fornecedor selecionado."},
        {"key": "Pedido Autorizado", "label": "Pedido autorizado", "description": "Liberado para pagamento."},
        {"key": "Comprado", "label": "Em transito", "description": "Pago, aguardando recebimento e tombamento."},
    ],
    "auditoria": [
        {"key": "Bom", "label": "Bom", "description": "Equipamento em bom estado."},
        {"key": "Regular", "label": "Regular", "description": "Desgaste normal de uso."},
        {"key": "Ruim", "label": "Ruim", "description": "Equipamento danificado."},
        {"key": "Não Encontrado", "label": "Nao encontrado", "description": "Equipamento nao localizado."},
    ],
}


MESSAGES: Dict[str, Dict[str, str]] = {
    "success": {
        "asset_saved": "Ativo salvo com sucesso.",
        "asset_removed": "Ativo removido.",
        "request_saved": "Requisicao salva com sucesso.",
        "quotation_approved": "Cotacao aprovada.",
        "order_authorized": "Pedido autorizado.",
        "order_purchased": "Pagamento confirmado.",
        "asset_received": "Ativo recebido e tombado no inventario.",
        "maintenance_opened": "Manutencao iniciada.",
        "maintenance_concluded": "Manutencao concluida.",
        "audit_finished": "Auditoria concluida com sucesso! Nenhuma divergencia encontrada.",
        "audit_finished_with_divergence": "Divergencias encontradas! Um pedido de confronto foi gerado.",
        "import_finished": "Importacao concluida.",
    },
    "error": {
        "action_not_allowed_for_status": "Esta acao nao e permitida para o status atual.",
        "auth_required": "Autenticacao necessaria.",
        "auth_invalid_credentials": "Credenciais invalidas. Verifique seu usuario e senha.",
        "auth_missing_credentials": "Informe usuario e senha.",
        "validation_error": "Dados informados sao invalidos.",
        "not_found": "Registro nao encontrado.",
        "asset_not_found": "Ativo nao encontrado.",
        "asset_id_taken": "Ja existe um ativo com este ID patrimonial.",
        "asset_not_available": "Ativo indisponivel para vinculo.",
        "asset_reserved": "Ativo ja vinculado a outra requisicao em aberto.",
        "asset_type_mismatch": "Tipo do ativo nao corresponde ao item solicitado.",
        "asset_retired": "Ativo baixado nao pode entrar em manutencao.",
        "asset_in_maintenance": "Ativo ja esta em manutencao.",
        "asset_not_in_maintenance": "Ativo nao esta em manutencao.",
        "employee_not_found": "Colaborador nao encontrado.",
        "employee_required": "Selecione o colaborador.",
        "department_not_found": "Departamento nao encontrado.",
        "legal_entity_not_found": "Empresa nao encontrada.",
        "request_not_found": "Requisicao nao encontrada.",
        "items_required": "Selecione ao menos um item.",
        "item_index_invalid": "Item da requisicao invalido.",
        "fulfillment_already_resolved": "Este item ja foi vinculado ao estoque ou a um pedido de compra.",
        "not_a_purchase_order": "Este item nao esta em pedido de compra.",
        "quotation_slot_invalid": "Opcao de fornecedor invalida.",
        "quotation_slot_empty": "Preencha a cotacao antes de seleciona-la.",
        "quotation_price_invalid": "Preco da cotacao invalido.",
        "delivery_forecast_required": "Informe a previsao de entrega antes de confirmar o pagamento.",
        "already_delivered": "Item ja recebido e tombado.",
        "status_invalid": "Status informado e invalido.",
        "session_not_found": "Sessao de auditoria nao encontrada.",
        "session_finished": "Sessao de auditoria ja finalizada.",
        "sector_required": "Selecione o setor.",
        "user_not_found": "Usuario nao encontrado.",
        "username_taken": "Nome de usuario ja cadastrado.",
        "username_required": "Informe o nome de usuario.",
        "module_invalid": "Modulo informado e invalido.",
        "account_not_found": "Conta contabil nao encontrada.",
        "classification_not_found": "Classificacao contabil nao encontrada.",
        "name_required": "Informe o nome.",
        "code_required": "Informe o codigo.",
        "selection_required": "Selecione ao menos um item.",
        "request_items_pending": "Vincule todos os itens ao estoque ou conclua a compra antes da entrega.",
        "receipt_fields_required": "Informe marca e modelo para o tombamento.",
        "asset_type_required": "Informe o tipo do ativo.",
        "asset_type_not_found": "Tipo de ativo nao encontrado.",
        "purchase_value_invalid": "Valor de aquisicao invalido.",
        "maintenance_type_invalid": "Tipo de manutencao invalido. Use Preventiva ou Corretiva.",
        "maintenance_scope_invalid": "Escopo de manutencao invalido. Use Interna ou Externa.",
        "maintenance_reason_required": "Informe o motivo da manutencao.",
        "employee_has_assets": "Colaborador possui ativos vinculados e nao pode ser removido.",
        "admin_user_protected": "O usuario admin nao pode ser removido ou renomeado.",
        "account_in_use": "Conta contabil possui classificacoes vinculadas.",
        "config_key_invalid": "Configuracao desconhecida.",
        "labels_selection_required": "Selecione ao menos um ativo para imprimir.",
        "json_body_required": "Envie um corpo JSON valido.",
        "workbook_invalid": "Arquivo Excel invalido ou sem a aba de inventario.",
        "workbook_required": "Envie o arquivo Excel no campo 'file'.",
        "permission_denied": "Voce nao possui permissao para executar esta acao.",
        "module_forbidden": "Seu usuario nao possui acesso a este modulo.",
        "approve_duty_required": "Seu usuario nao pode aprovar ou autorizar compras.",
        "execute_duty_required": "Seu usuario nao pode executar pagamentos ou recebimentos.",
        "rate_limit_exceeded": "Muitas requisicoes. Tente novamente em instantes.",
        "store_unavailable": "Falha ao gravar no banco de dados. Tente novamente.",
        "unexpected_error": "Nao foi possivel concluir a operacao.",
    },
}


def status_keys_for_group(group: str) -> List[str]:
    return [item["key"] for item in STATUS_GROUPS.get(group, [])]


def status_label(group: str, key: str | None, default: str | None = None) -> str:
    for item in STATUS_GROUPS.get(group, []):
        if item["key"] == key:
            return item["label"]
    if default is not None:
        return default
    return str(key or "")


def module_label(module: str) -> str:
    return MODULE_LABELS.get(module, module)


def get_message(category: str, key: str, default: str | None = None) -> str:
    message = MESSAGES.get(category, {}).get(key)
    if message:
        return message
    if default is not None:
        return default
    return key


def error_message(key: str, default: str | None = None) -> str:
    return get_message("error", key, default)


def success_message(key: str, default: str | None = None) -> str:
    return get_message("success", key, default)


def frontend_bundle() -> Dict[str, object]:
    return {
        "terms": FRIENDLY_TERMS,
        "modules": MODULE_LABELS,
        "status_groups": STATUS_GROUPS,
        "messages": MESSAGES,
    }
