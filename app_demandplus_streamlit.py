import logging
import time
from datetime import date, datetime
from typing import List, Optional

import plotly.express as px
import streamlit as st

from demandplus.auth.auth_service import AuthService, Role, can_edit
from demandplus.core.dates import format_brazilian_date, parse_calendar_date
from demandplus.core.exceptions import DemandPlusError, InvalidBackupError
from demandplus.core.logging_config import configure_logging
from demandplus.core.settings import Settings, get_settings
from demandplus.core.status_engine import effective_expiration_date
from demandplus.core.workflow_guard import CompletionOutcome
from demandplus.models.demanda import Demand, DemandStatus, Difficulty
from demandplus.models.si import LOCATIONS, SI, SIStatus
from demandplus.services.backup_service import backup_filename, backup_to_json, export_backup, import_backup
from demandplus.services.demand_service import CLEAR_CONFIRMATION_PHRASE, DemandService
from demandplus.services.firebase_service import FirestoreStore
from demandplus.services.forms import prepare_si_for_save, validate_demand_form, validate_si_form
from demandplus.services.gemini_service import DEFAULT_CONTEXT, GeminiService
from demandplus.services.notification_service import NotificationService
from demandplus.services.queries import (DEMAND_STATUS_COLORS, DIFFICULTY_COLORS, OVERDUE_FILTER, PENDING_FILTER,
                                         SI_STATUS_COLORS, chart_data, completion_report_text, demand_stats,
                                         filter_demands, filter_sis, is_overdue, linked_service_order, si_stats,
                                         sis_by_location, time_ago_label)
from demandplus.services.report_service import demands_to_dataframe, sis_to_dataframe, to_excel
from demandplus.services.storage import JsonFileStore

logger = logging.getLogger(__name__)

# --- CONFIGURAÇÃO DA PÁGINA ---
st.set_page_config(page_title="DEMAND+", layout="wide")


def _toast_sink(title: str, message: str) -> None:
    st.toast(f"**{title}**\n\n{message}", icon="🔔")


@st.cache_resource
def build_demand_service(_settings: Settings) -> DemandService:
    if _settings.storage_backend == "firestore":
        if "firebase_credentials" not in st.secrets:
            st.error("Credenciais do Firebase não encontradas! Verifique seu arquivo secrets.toml.")
            st.stop()
        store = FirestoreStore(dict(st.secrets["firebase_credentials"]))
    else:
        store = JsonFileStore(_settings.data_file)
    notifier = NotificationService(sink=_toast_sink, enabled=_settings.notifications_enabled)
    service = DemandService(store, notifier)
    service.load()
    return service


class ViewManager:
    def __init__(self, auth_service: AuthService, demand_service: DemandService, gemini_service: GeminiService):
        self.auth, self.service, self.gemini = auth_service, demand_service, gemini_service
        self._init_session_state()

    def _init_session_state(self):
        defaults = {'role': None, 'page': "Dashboard", 'edit_demand_id': None, 'edit_si_id': None,
                    'complete_id': None, 'confirm_delete': {}, 'demand_filter': "", 'confirm_import': None,
                    'last_activity': time.time()}
        for key, value in defaults.items():
            if key not in st.session_state: st.session_state[key] = value

    @property
    def role(self) -> Optional[Role]:
        return st.session_state.role

    def run(self):
        if self.role is None:
            self.render_login_page()
            return
        if self.auth.is_session_expired(st.session_state.last_activity):
            for key in list(st.session_state.keys()): del st.session_state[key]
            st.warning("Sessão expirada. Faça login novamente.")
            time.sleep(2)
            st.rerun()
        st.session_state.last_activity = time.time()
        self.service.refresh()
        self.render_main_app()

    def render_login_page(self):
        _, col2, _ = st.columns([1, 2, 1])
        with col2:
            st.title("⚡ DEMAND+")
            st.caption("ACESSO AO SISTEMA")
            with st.form("login_form"):
                access_code = st.text_input("Código de Acesso", type="password")
                if st.form_submit_button("Entrar", type="primary"):
                    role = self.auth.login(access_code)
                    if role is None:
                        st.error("Código inválido. Acesso não autorizado.")
                    else:
                        st.session_state.role = role
                        st.session_state.last_activity = time.time()
                        logger.info(f"Login realizado com perfil {role.value}.")
                        st.rerun()

    def render_main_app(self):
        self.render_sidebar()
        if st.session_state.complete_id: self.render_complete_modal()
        if st.session_state.confirm_import is not None: self.render_import_modal()

        pages = {
            "Dashboard": self.render_dashboard,
            "Demandas": self.render_demand_list,
            "Nova Demanda": self.render_demand_form,
            "Painel SI": self.render_si_dashboard,
            "SIs": self.render_si_list,
            "Nova SI": self.render_si_form,
        }
        pages.get(st.session_state.page, self.render_dashboard)()

    def render_sidebar(self):
        with st.sidebar:
            st.write(f"👤 Perfil: **{self.role.value}**")
            options = ["Dashboard", "Demandas", "Painel SI", "SIs"]
            if can_edit(self.role): options += ["Nova Demanda", "Nova SI"]
            for option in options:
                if st.button(option, use_container_width=True, key=f"nav_{option}"):
                    st.session_state.page = option
                    st.session_state.edit_demand_id = None
                    st.session_state.edit_si_id = None
                    if option == "Demandas": st.session_state.demand_filter = ""
                    st.rerun()
            st.divider()
            if st.button("Logout", use_container_width=True):
                for key in list(st.session_state.keys()): del st.session_state[key]
                st.rerun()

    # --- Dashboard de demandas ---

    def render_dashboard(self):
        st.header("Dashboard de Demandas")
        today = date.today()
        demands = self.service.demands
        stats = demand_stats(demands, today)
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Total", stats.total)
        c2.metric("Concluídas", stats.completed)
        c3.metric("Pendentes", stats.pending)
        c4.metric("Vencidas", stats.overdue)

        c1, c2, c3, c4 = st.columns(4)
        if c1.button("Ver todas", key="dash_all"): self._navigate_demands("")
        if c2.button("Ver concluídas", key="dash_completed"): self._navigate_demands(DemandStatus.COMPLETED.value)
        if c3.button("Ver pendentes", key="dash_pending"): self._navigate_demands(PENDING_FILTER)
        if c4.button("Ver vencidas", key="dash_overdue"): self._navigate_demands(OVERDUE_FILTER)
        st.divider()

        c1, c2 = st.columns(2)
        with c1:
            st.subheader("Status das Demandas")
            self._render_pie(chart_data([d.status.value for d in demands], DEMAND_STATUS_COLORS))
        with c2:
            st.subheader("Demandas por Dificuldade")
            self._render_pie(chart_data([d.difficulty.value for d in demands], DIFFICULTY_COLORS))

        st.divider()
        self.render_database_panel()

    def _navigate_demands(self, status_filter: str):
        st.session_state.demand_filter = status_filter
        st.session_state.page = "Demandas"
        st.rerun()

    def _render_pie(self, df):
        if df.empty:
            st.info("Nenhum dado para exibir.")
            return
        fig = px.pie(df, names='name', values='value', hole=.3, color='name',
                     color_discrete_map=dict(zip(df['name'], df['color'])))
        st.plotly_chart(fig, use_container_width=True)

    def render_database_panel(self):
        st.subheader("Banco de Dados")
        backup = export_backup(self.service.demands, self.service.sis, datetime.now())
        c1, c2, c3 = st.columns(3)
        c1.download_button("📥 Exportar Backup (JSON)", backup_to_json(backup), backup_filename(date.today()),
                           mime="application/json")
        c2.download_button("📊 Demandas (Excel)", to_excel(demands_to_dataframe(self.service.demands), "Demandas"),
                           "relatorio_demandas.xlsx")
        c3.download_button("📊 SIs (Excel)",
                           to_excel(sis_to_dataframe(self.service.sis, self.service.demands), "SIs"),
                           "relatorio_sis.xlsx")

        if not can_edit(self.role):
            return
        uploaded_file = st.file_uploader("Importar Backup", type="json")
        if uploaded_file and st.button("Processar Backup", type="primary"):
            try:
                st.session_state.confirm_import = import_backup(uploaded_file.getvalue(), date.today())
                st.rerun()
            except InvalidBackupError as e:
                st.error(str(e))

        with st.expander("⚠️ Limpar Banco de Dados"):
            st.warning("ATENÇÃO: Você está prestes a apagar TODO o histórico de demandas e SIs. "
                       "Esta ação é irreversível!")
            phrase = st.text_input(f"Para confirmar a exclusão total, digite '{CLEAR_CONFIRMATION_PHRASE}':")
            if st.button("Apagar tudo", type="primary"):
                try:
                    self.service.clear_all(self.role, phrase)
                    st.success("Banco de dados limpo com sucesso.")
                    st.rerun()
                except DemandPlusError as e:
                    st.error(str(e))

    @st.dialog("Importar Backup")
    def render_import_modal(self):
        payload = st.session_state.confirm_import
        st.write(f"Arquivo com **{len(payload.demands)}** demandas e **{len(payload.sis)}** SIs.")
        st.warning("Isso irá substituir os dados atuais pelos dados do arquivo. Deseja continuar?")
        c1, c2 = st.columns(2)
        if c1.button("Importar", type="primary"):
            self.service.replace_all(payload.demands, payload.sis, self.role)
            st.session_state.confirm_import = None
            st.rerun()
        if c2.button("Cancelar"):
            st.session_state.confirm_import = None
            st.rerun()

    # --- Demandas ---

    def render_demand_list(self):
        st.header("Demandas")
        today = date.today()
        demands = self.service.demands
        status_options = ["", PENDING_FILTER, OVERDUE_FILTER] + [s.value for s in DemandStatus]
        initial = st.session_state.demand_filter
        c1, c2, c3, c4 = st.columns([3, 2, 2, 2])
        search = c1.text_input("Buscar OS ou descrição")
        location = c2.selectbox("Local", [""] + sorted({d.location for d in demands}))
        status = c3.selectbox("Status", status_options,
                              index=status_options.index(initial) if initial in status_options else 0,
                              format_func=lambda s: {"": "Todos", PENDING_FILTER: "Pendentes",
                                                     OVERDUE_FILTER: "Vencidas"}.get(s, s))
        difficulty = c4.selectbox("Dificuldade", [""] + [d.value for d in Difficulty],
                                  format_func=lambda s: s or "Todas")

        result = filter_demands(demands, today, search=search, status=status, difficulty=difficulty,
                                location=location)
        if not result:
            st.info("Nenhuma demanda encontrada.")
        for demand in result:
            self.render_demand_row(demand, today)

    def render_demand_row(self, demand: Demand, today: date):
        overdue = is_overdue(demand, today)
        with st.container(border=True):
            st.markdown(f"**OS {demand.service_order}** · {demand.location} · `{demand.difficulty.value}` · "
                        f"`{demand.status.value}`")
            created_label = time_ago_label(demand.created_at, datetime.now())
            if created_label: st.caption(created_label)
            st.write(demand.description)
            deadline_label = f"Prazo: {format_brazilian_date(demand.deadline)}"
            st.markdown(f":red[{deadline_label} (VENCIDA)]" if overdue else deadline_label)
            if demand.observation: st.caption(demand.observation)
            if demand.status == DemandStatus.COMPLETED:
                st.code(completion_report_text(demand), language=None)

            if not can_edit(self.role):
                return
            cols = st.columns([1, 1, 2, 6])
            if cols[0].button("✏️", key=f"edit_d_{demand.id}", help="Editar"):
                st.session_state.edit_demand_id = demand.id
                st.session_state.page = "Nova Demanda"
                st.rerun()
            if cols[1].button("🗑️", key=f"del_d_{demand.id}", help="Excluir"):
                st.session_state.confirm_delete = {'kind': 'demand', 'id': demand.id}
                st.rerun()
            if demand.status != DemandStatus.COMPLETED and cols[2].button("✅ Concluir", key=f"done_{demand.id}"):
                st.session_state.complete_id = demand.id
                st.rerun()
            self._render_delete_confirmation('demand', demand.id, f"a OS {demand.service_order}")

    def _render_delete_confirmation(self, kind: str, record_id: str, label: str):
        info = st.session_state.confirm_delete
        if info.get('kind') != kind or info.get('id') != record_id:
            return
        st.warning(f"Tem certeza que deseja excluir {label}?")
        c1, c2, _ = st.columns([1, 1, 8])
        if c1.button("Sim, excluir", key=f"conf_del_{record_id}", type="primary"):
            if kind == 'demand':
                self.service.delete_demand(record_id, self.role)
            else:
                self.service.delete_si(record_id, self.role)
            st.session_state.confirm_delete = {}
            st.rerun()
        if c2.button("Cancelar", key=f"canc_del_{record_id}"):
            st.session_state.confirm_delete = {}
            st.rerun()

    @st.dialog("Concluir Demanda")
    def render_complete_modal(self):
        demand_id = st.session_state.complete_id
        decision = self.service.check_completion(demand_id)

        if decision.outcome == CompletionOutcome.BLOCKED_EXPIRED_SI:
            st.error(decision.reason)
            if st.button("Fechar"):
                st.session_state.complete_id = None
                st.rerun()
            return

        override = False
        if decision.requires_override:
            st.warning(decision.reason)
            override = st.checkbox("Prosseguir mesmo assim")
        else:
            st.info(decision.reason)
        confirmed = st.checkbox("Dar baixa e marcar esta demanda como CONCLUÍDA")

        c1, c2 = st.columns(2)
        if c1.button("Concluir", type="primary", disabled=not confirmed or (decision.requires_override and not override)):
            result = self.service.complete_demand(demand_id, self.role, override=override, confirmed=confirmed)
            if not result.completed:
                st.error(result.decision.reason)
                return
            st.session_state.complete_id = None
            st.rerun()
        if c2.button("Cancelar"):
            st.session_state.complete_id = None
            st.rerun()

    def _enhance_description(self):
        text = st.session_state.get("demand_description", "")
        context = st.session_state.get("demand_location") or DEFAULT_CONTEXT
        st.session_state.demand_description = self.gemini.enhance_description(text, context)

    def render_demand_form(self):
        if not can_edit(self.role):
            st.error("Acesso somente leitura.")
            return
        editing = self.service.get_demand(st.session_state.edit_demand_id) if st.session_state.edit_demand_id else None
        base = editing or Demand(opening_date=date.today().isoformat())
        st.header("Editar Demanda" if editing else "Nova Demanda")
        if st.session_state.get("demand_form_for") != base.id:
            st.session_state.demand_form_for = base.id
            st.session_state.demand_description = base.description
            st.session_state.demand_location = base.location if base.location in LOCATIONS else ""

        with st.form("demand_form"):
            c1, c2 = st.columns(2)
            opening = c1.date_input("Data de Abertura *", value=parse_calendar_date(base.opening_date), format="DD/MM/YYYY")
            deadline = c2.date_input("Prazo *", value=parse_calendar_date(base.deadline), format="DD/MM/YYYY")
            location_options = [""] + LOCATIONS
            location = c1.selectbox("Local *", location_options, key="demand_location")
            service_order = c2.text_input("Ordem de Serviço *", base.service_order)
            difficulty = c1.selectbox("Dificuldade", list(Difficulty), index=list(Difficulty).index(base.difficulty),
                                      format_func=lambda d: d.value)
            status = c2.selectbox("Status", list(DemandStatus), index=list(DemandStatus).index(base.status),
                                  format_func=lambda s: s.value)
            st.text_area("Descrição *", key="demand_description")
            st.form_submit_button("✨ Melhorar descrição com IA", on_click=self._enhance_description)
            observation = st.text_area("Observação", base.observation)

            if st.form_submit_button("Salvar", type="primary"):
                demand = base.model_copy(update={
                    "opening_date": opening.isoformat() if opening else "",
                    "deadline": deadline.isoformat() if deadline else "",
                    "location": location,
                    "service_order": service_order.strip(),
                    "difficulty": difficulty,
                    "status": status,
                    "description": st.session_state.demand_description,
                    "observation": observation,
                })
                self._save_demand(demand)

    def _save_demand(self, demand: Demand):
        missing = validate_demand_form(demand)
        if missing:
            st.error(f"Por favor, preencha todos os campos obrigatórios: {', '.join(missing)}.")
            return
        self.service.save_demand(demand, self.role)
        st.session_state.edit_demand_id = None
        st.session_state.page = "Demandas"
        st.rerun()

    # --- SIs ---

    def render_si_dashboard(self):
        st.header("Painel de SIs")
        sis = self.service.sis
        stats = si_stats(sis)
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Ativas", stats.active)
        c2.metric("Próximas do Vencimento", stats.expiring)
        c3.metric("Vencidas", stats.expired)
        c4.metric("Encerradas", stats.closed)
        st.divider()
        c1, c2 = st.columns(2)
        with c1:
            st.subheader("Status das SIs")
            self._render_pie(chart_data([s.status.value for s in sis], SI_STATUS_COLORS))
        with c2:
            st.subheader("SIs por Local")
            df = sis_by_location(sis)
            if df.empty:
                st.info("Nenhum dado para exibir.")
            else:
                st.plotly_chart(px.bar(df, x='name', y='value', text_auto=True,
                                       labels={'name': 'Local', 'value': 'Quantidade'}), use_container_width=True)

    def render_si_list(self):
        st.header("Solicitações de Intervenção")
        demands = self.service.demands
        c1, c2, c3 = st.columns([3, 2, 2])
        search = c1.text_input("Buscar número, descrição ou OS")
        location = c2.selectbox("Local", [""] + LOCATIONS, format_func=lambda s: s or "Todos")
        status = c3.selectbox("Status", [""] + [s.value for s in SIStatus], format_func=lambda s: s or "Todos")

        result = filter_sis(self.service.sis, demands, search=search, status=status, location=location)
        if not result:
            st.info("Nenhuma SI encontrada.")
        for si in result:
            self.render_si_row(si, demands)

    def render_si_row(self, si: SI, demands: List[Demand]):
        with st.container(border=True):
            st.markdown(f"**{si.number}** · {si.location} · `{si.status.value}`")
            if si.status == SIStatus.EXPIRED: st.error("SI VENCIDA")
            elif si.status == SIStatus.EXPIRING: st.warning("SI próxima do vencimento")
            st.write(si.description)
            order = linked_service_order(si, demands)
            if order: st.caption(f"Vinculado: {order}")
            st.write(f"Vencimento: {format_brazilian_date(effective_expiration_date(si))} · "
                     f"Responsável: {si.responsible} ({si.responsible_area or '-'})")
            if si.status == SIStatus.EXTENDED and si.extension_justification:
                st.caption(f"Prorrogada em {format_brazilian_date(si.extension_date)}: {si.extension_justification}")

            if not can_edit(self.role):
                return
            cols = st.columns([1, 1, 8])
            if cols[0].button("✏️", key=f"edit_si_{si.id}", help="Editar"):
                st.session_state.edit_si_id = si.id
                st.session_state.page = "Nova SI"
                st.rerun()
            if cols[1].button("🗑️", key=f"del_si_{si.id}", help="Excluir"):
                st.session_state.confirm_delete = {'kind': 'si', 'id': si.id}
                st.rerun()
            self._render_delete_confirmation('si', si.id, f"a SI {si.number} permanentemente")

    def render_si_form(self):
        if not can_edit(self.role):
            st.error("Acesso somente leitura.")
            return
        editing = self.service.get_si(st.session_state.edit_si_id) if st.session_state.edit_si_id else None
        base = editing or SI(issue_date=date.today().isoformat())
        st.header("Editar SI" if editing else "Nova SI")
        demands = self.service.demands
        demand_options = {"": "Sem vínculo", **{d.id: f"{d.service_order} - {d.location}" for d in demands}}

        extension_mode = st.toggle("Prorrogar SI", value=bool(base.new_expiration_date))
        close = False
        if editing:
            st.write(f"Status Atual: `{base.status.value}`")
            close = st.checkbox("Encerrar SI", value=base.status == SIStatus.CLOSED,
                                help="Uma prorrogação com nova data prevalece sobre o encerramento.")

        with st.form("si_form"):
            c1, c2 = st.columns(2)
            number = c1.text_input("Número da SI *", base.number, placeholder="Ex: SI-2025-0145")
            location = c2.selectbox("Local *", [""] + LOCATIONS,
                                    index=([""] + LOCATIONS).index(base.location) if base.location in LOCATIONS else 0)
            demand_id = c1.selectbox("Demanda Vinculada", list(demand_options),
                                     index=list(demand_options).index(base.demand_id)
                                     if base.demand_id in demand_options else 0,
                                     format_func=demand_options.get)
            issue_date = c1.date_input("Data de Emissão *", value=parse_calendar_date(base.issue_date),
                                       format="DD/MM/YYYY")
            expiration = c2.date_input("Data de Vencimento *", value=parse_calendar_date(base.expiration_date),
                                       format="DD/MM/YYYY")
            description = st.text_area("Descrição da Atividade", base.description)

            new_expiration, justification = None, None
            if extension_mode:
                st.subheader("Controle de Prorrogação")
                new_expiration = st.date_input("Novo Vencimento *",
                                               value=parse_calendar_date(base.new_expiration_date),
                                               format="DD/MM/YYYY")
                justification = st.text_area("Justificativa da Prorrogação *", base.extension_justification or "")

            c1, c2 = st.columns(2)
            responsible = c1.text_input("Responsável pela SI *", base.responsible)
            responsible_area = c2.text_input("Área / Empresa", base.responsible_area)
            observations = st.text_area("Observações Gerais", base.observations)

            if st.form_submit_button("Salvar", type="primary"):
                si = base.model_copy(update={
                    "number": number.strip().upper(),
                    "location": location,
                    "demand_id": demand_id or None,
                    "issue_date": issue_date.isoformat() if issue_date else "",
                    "expiration_date": expiration.isoformat() if expiration else "",
                    "description": description,
                    "new_expiration_date": new_expiration.isoformat() if new_expiration else None,
                    "extension_justification": justification or None,
                    "responsible": responsible,
                    "responsible_area": responsible_area,
                    "observations": observations,
                })
                errors = validate_si_form(si, extension_mode)
                if errors:
                    st.error("Por favor, preencha os campos obrigatórios: " + ", ".join(errors))
                    return
                prepared = prepare_si_for_save(si, extension_mode, close, date.today(), previous=editing)
                self.service.save_si(prepared, self.role)
                st.session_state.edit_si_id = None
                st.session_state.page = "SIs"
                st.rerun()


# -----------------------------------------------------------------------------
# PONTO DE ENTRADA DA APLICAÇÃO
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    try:
        settings = get_settings()
        configure_logging(settings)
        settings.validate()
        auth_service = AuthService(settings.admin_access_code, settings.viewer_access_code,
                                   settings.session_timeout_minutes)
        gemini_service = GeminiService(settings.gemini_api_key, settings.gemini_model)
        app = ViewManager(auth_service, build_demand_service(settings), gemini_service)
        app.run()
    except Exception as e:
        st.error("Ocorreu um erro crítico na aplicação.")
        st.exception(e)
        logger.critical(f"Erro crítico na aplicação: {e}", exc_info=True)
