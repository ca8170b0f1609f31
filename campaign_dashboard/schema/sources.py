"""Built-in source table schemas and the default dashboard configuration.

Defines the logical fields of every spreadsheet tab the dashboard reads,
with the header synonyms seen across exports (Portuguese and English
variants, trailing spaces, accent-less spellings). Positions are only
given for legacy tabs whose columns are fixed (reach tabs A:E, strategy
sheet A:F, benchmark table).

Usage::

    config = build_default_config()
    schema = config.schema("delivery")
"""

from .models import (
    ColumnSpec,
    CtaRule,
    DashboardConfig,
    FieldType,
    SourceType,
    TableSchema,
)


TEXT = FieldType.TEXT
NUMBER = FieldType.NUMBER
INTEGER = FieldType.INTEGER
PLAIN = FieldType.PLAIN_NUMBER
DATE = FieldType.DATE


# ---------------------------------------------------------------------------
# Source schemas
# ---------------------------------------------------------------------------

def build_delivery_schema() -> TableSchema:
    """Consolidated delivery export (all platforms, one row per day/ad)."""
    return TableSchema(
        name="Consolidado",
        source_type=SourceType.DELIVERY,
        description="Daily ad-platform delivery: spend, impressions, reach, clicks, video.",
        columns=[
            ColumnSpec("date", ("Date", "Data", "Dia", "Day"), DATE),
            ColumnSpec("platform", ("Veículo", "Veiculo", "Plataforma", "Platform", "Vehicle"),
                       default="Outros"),
            ColumnSpec("campaign", ("Campaign name", "Campanha", "Nome da campanha", "Campaign")),
            ColumnSpec("region", ("Praça", "Praca", "Market")),
            ColumnSpec("category", ("Tipo de Compra", "Tipo de compra", "Purchase type", "Buying type"),
                       default="CPM"),
            ColumnSpec("media_format", ("video_estatico_audio", "Formato", "Format")),
            ColumnSpec("impressions", ("Impressions", "Impressões", "Impressoes"), INTEGER),
            ColumnSpec("cost", ("Total spent", "Cost", "Custo", "Investimento", "Amount spent"), NUMBER),
            ColumnSpec("reach", ("Reach", "Alcance"), INTEGER),
            ColumnSpec("clicks", ("Clicks", "Cliques", "Link clicks"), INTEGER),
            ColumnSpec("video_views", ("Video views", "Visualizações", "Views"), INTEGER),
            ColumnSpec("video_views_25", ("Video views at 25%", "Visualizações 25%"), INTEGER),
            ColumnSpec("video_views_50", ("Video views at 50%", "Visualizações 50%"), INTEGER),
            ColumnSpec("video_views_75", ("Video views at 75%", "Visualizações 75%"), INTEGER),
            ColumnSpec("video_completions", ("Video completions", "Video views at 100%",
                                             "Visualizações 100%"), INTEGER),
        ],
    )


def build_reach_schema() -> TableSchema:
    """Dedicated deduplicated-reach tab (legacy A:E layout)."""
    return TableSchema(
        name="Alcance",
        source_type=SourceType.REACH,
        description="Deduplicated reach per advertiser and region for one platform.",
        columns=[
            ColumnSpec("advertiser", ("Advertiser name", "Anunciante", "Advertiser"), position=0),
            ColumnSpec("impressions", ("Impressions", "Impressões", "Impressoes"), INTEGER, position=1),
            ColumnSpec("reach", ("Reach", "Alcance"), INTEGER, position=2),
            ColumnSpec("frequency", ("Frequency", "Frequência", "Frequencia"), NUMBER, position=3),
            ColumnSpec("region", ("Praça", "Praca", "Market"), position=4),
            ColumnSpec("platform", ("Plataforma", "Veículo", "Veiculo", "Platform")),
        ],
    )


def build_benchmark_schema() -> TableSchema:
    """Benchmark table: reference CPM/CPC/CTR/VTR per vehicle and media type."""
    return TableSchema(
        name="BENCHMARK",
        source_type=SourceType.BENCHMARK,
        columns=[
            ColumnSpec("platform", ("Veículo", "Veiculo", "Vehicle"), position=0),
            ColumnSpec("category", ("Tipo de Mídia", "Tipo de Midia", "Media type"), position=1),
            ColumnSpec("cpm", ("CPM",), NUMBER, position=2),
            ColumnSpec("cpc", ("CPC",), NUMBER, position=3),
            ColumnSpec("ctr", ("CTR",), NUMBER, position=7),
            ColumnSpec("vtr", ("VTR 100%", "Completion rate", "VTR"), NUMBER, position=8),
        ],
    )


def build_events_schema() -> TableSchema:
    """GA4 custom events (CTA clicks and friends)."""
    return TableSchema(
        name="Eventos Receptivos",
        source_type=SourceType.EVENTS,
        columns=[
            ColumnSpec("date", ("Date", "Data"), DATE),
            ColumnSpec("action", ("Parâmetro Ação", "Parametro Acao", "Event action")),
            ColumnSpec("label", ("Parâmetro Rótulo", "Parametro Rotulo", "Event label")),
            ColumnSpec("region", ("Praça", "Praca")),
            ColumnSpec("event_count", ("Event count", "Contagem de eventos"), INTEGER),
        ],
    )


def build_sessions_schema() -> TableSchema:
    """GA4 traffic export (sessions by source, device, state)."""
    return TableSchema(
        name="GA4_receptivos",
        source_type=SourceType.SESSIONS,
        columns=[
            ColumnSpec("date", ("Date", "Data"), DATE),
            ColumnSpec("source", ("Session source", "Origem da sessão", "Source"), default="Outros"),
            ColumnSpec("origin", ("Origem", "Origin")),
            ColumnSpec("region", ("Praça", "Praca")),
            ColumnSpec("state", ("Region", "Estado", "State"), default="Outros"),
            ColumnSpec("device", ("Device category", "Categoria do dispositivo", "Device"),
                       default="Outros"),
            ColumnSpec("sessions", ("Sessions", "Sessões"), INTEGER),
            ColumnSpec("new_users", ("New users", "Novos usuários", "First visits"), INTEGER),
            ColumnSpec("bounces", ("Bounces", "Rejeições"), INTEGER),
            ColumnSpec("engaged_sessions", ("Engaged sessions", "Sessões engajadas"), INTEGER),
            ColumnSpec("avg_session_duration", ("Average session duration",
                                                "Duração média da sessão"), PLAIN),
        ],
    )


def build_plan_schema() -> TableSchema:
    """Strategy sheet: invested vs planned cost per region, vehicle, month."""
    return TableSchema(
        name="Estratégia Online",
        source_type=SourceType.PLAN,
        columns=[
            ColumnSpec("region", ("Praça", "Praca"), position=0),
            ColumnSpec("platform", ("Veículo", "Veiculo", "Vehicle"), position=1),
            ColumnSpec("month", ("MÊS", "Mes", "Month"), position=2),
            ColumnSpec("cost", ("Custo Investido", "Investido", "Actual cost"), NUMBER, position=3),
            ColumnSpec("planned_cost", ("Custo Previsto", "Previsto", "Planned cost"), NUMBER,
                       position=4),
            ColumnSpec("category", ("Tipo de Compra", "Purchase type"), position=5),
        ],
    )


SCHEMA_BUILDERS = {
    SourceType.DELIVERY: build_delivery_schema,
    SourceType.REACH: build_reach_schema,
    SourceType.BENCHMARK: build_benchmark_schema,
    SourceType.EVENTS: build_events_schema,
    SourceType.SESSIONS: build_sessions_schema,
    SourceType.PLAN: build_plan_schema,
}


# ---------------------------------------------------------------------------
# Default dashboard configuration
# ---------------------------------------------------------------------------

# GA4 reports English state names; the region map uses the Portuguese ones.
STATE_ALIASES = {
    "Ceara": "Ceará",
    "Federal District": "Distrito Federal",
    "State of Acre": "Acre",
    "State of Alagoas": "Alagoas",
    "State of Amapa": "Amapá",
    "State of Amazonas": "Amazonas",
    "State of Bahia": "Bahia",
    "State of Espirito Santo": "Espírito Santo",
    "State of Goias": "Goiás",
    "State of Maranhao": "Maranhão",
    "State of Mato Grosso": "Mato Grosso",
    "State of Mato Grosso do Sul": "Mato Grosso do Sul",
    "State of Minas Gerais": "Minas Gerais",
    "State of Para": "Pará",
    "State of Paraiba": "Paraíba",
    "State of Parana": "Paraná",
    "State of Pernambuco": "Pernambuco",
    "State of Piaui": "Piauí",
    "State of Rio de Janeiro": "Rio de Janeiro",
    "State of Rio Grande do Norte": "Rio Grande do Norte",
    "State of Rio Grande do Sul": "Rio Grande do Sul",
    "State of Rondonia": "Rondônia",
    "State of Roraima": "Roraima",
    "State of Santa Catarina": "Santa Catarina",
    "State of Sao Paulo": "São Paulo",
    "State of Sergipe": "Sergipe",
    "State of Tocantins": "Tocantins",
    "Upper Takutu-Upper Essequibo": "Outros",
}


def build_default_config() -> DashboardConfig:
    """Build the configuration the national campaign dashboard runs with."""
    return DashboardConfig(
        schemas={st.value: build() for st, build in SCHEMA_BUILDERS.items()},
        dedicated_reach_platforms=["TikTok", "Meta", "Uber"],
        reach_tabs={
            "Tiktok_alcance": "TikTok",
            "Meta_alcance": "Meta",
            "Uber_alcance": "Uber",
        },
        planned_impressions=51_241_352,
        planned_clicks=258_138,
        cta_action="botao-cta",
        cta_rules=[
            CtaRule(region="Brasília", label="MEME: no Br@sil da memeficação - Ingressos"),
            CtaRule(region="Salvador", label="Ancestral: Afro-Américas - Ingressos"),
        ],
        state_aliases=dict(STATE_ALIASES),
        benchmark_aliases={"Meta": "META", "TikTok": "TIK TOK"},
    )
