# -*- coding: utf-8 -*-
import logging
from datetime import datetime

import pandas as pd
import plotly.express as px
import streamlit as st

import config
from dashboard import DashboardSession
from exporter import FORMAT_EXTENSIONS, PERIOD_LABELS, export_preview, records_to_csv, simulate_export
from filters import date_label
from record_store import InMemoryRecordStore, RestRecordStore
from schemas import ALL, FilterCriteria, UnsupportedFileError
from uploader import WebhookUploader

config.setup_logging()
logger = logging.getLogger(__name__)


@st.cache_resource
def get_store():
    if config.SUPABASE_URL:
        return RestRecordStore()
    logger.warning("SUPABASE_URL not set, using an empty in-memory store")
    return InMemoryRecordStore()


@st.cache_resource
def get_session(owner_id):
    # One subscription per owner for the whole server, shared by browser sessions.
    return DashboardSession(get_store(), owner_id).open()


def render_stats(session):
    stats = session.statistics()
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("💶 Dépenses aujourd'hui", f"{stats.total_today:,.2f}€", f"{stats.count_today} facture(s)")
    with col2:
        st.metric("📅 Total du mois", f"{stats.total_this_month:,.2f}€", f"{stats.count_this_month} facture(s)")
    with col3:
        st.metric("🧾 Moyenne quotidienne", f"{stats.average_daily:,.2f}€", f"Basé sur {stats.days_in_month} jours",
                  delta_color="off")

    series = session.series()
    if not series.daily_totals:
        st.info("Aucune donnée pour le moment. Téléchargez vos premières factures dans l'onglet Upload.")
        return

    col_chart1, col_chart2 = st.columns(2)
    with col_chart1:
        st.subheader("Dépenses par jour")
        daily_df = pd.DataFrame([p.model_dump() for p in series.daily_totals])
        fig_bar = px.bar(daily_df, x="day", y="amount", color_discrete_sequence=["#3B82F6"])
        fig_bar.update_layout(margin=dict(t=10, b=10, l=10, r=10), xaxis_title="Jour", yaxis_title="€")
        st.plotly_chart(fig_bar, use_container_width=True)

    with col_chart2:
        st.subheader("Répartition par catégorie")
        cat_df = pd.DataFrame([p.model_dump() for p in series.category_totals])
        fig_pie = px.pie(
            cat_df,
            names="name",
            values="amount",
            color="name",
            color_discrete_map=dict(zip(cat_df["name"], cat_df["color"])),
        )
        fig_pie.update_layout(margin=dict(t=10, b=10, l=10, r=10))
        st.plotly_chart(fig_pie, use_container_width=True)

    st.subheader("Tendance")
    trend_df = pd.DataFrame([p.model_dump() for p in series.weekly_trend])
    fig_line = px.line(trend_df, x="label", y="amount", markers=True, color_discrete_sequence=["#10B981"])
    fig_line.update_layout(margin=dict(t=10, b=10, l=10, r=10), xaxis_title="", yaxis_title="€")
    st.plotly_chart(fig_line, use_container_width=True)


def render_upload():
    st.subheader("Zone de téléchargement")
    st.caption("Formats supportés: PNG, JPG, JPEG, GIF, PDF")
    files = st.file_uploader(
        "Glissez-déposez vos factures (images ou PDF)",
        type=["png", "jpg", "jpeg", "gif", "pdf"],
        accept_multiple_files=True,
    )
    if files and st.button("📤 Envoyer", type="primary"):
        uploader = WebhookUploader()
        try:
            for f in files:
                try:
                    result = uploader.send(f.name, f.size, f.type)
                except UnsupportedFileError as e:
                    st.error(str(e))
                    continue
                if result.status == "success":
                    st.success(f"✅ {f.name} a été envoyé pour extraction.")
                else:
                    st.error(f"❌ Impossible d'envoyer {f.name}. Vérifiez votre connexion.")
        finally:
            uploader.close()
    st.info("Les informations extraites apparaîtront dans l'onglet Factures.")


def render_gallery(session):
    if not session.records:
        st.info("Aucune facture pour le moment. Commencez par en télécharger une.")
        return

    all_view = session.gallery()
    col1, col2, col3 = st.columns(3)
    with col1:
        search = st.text_input("🔍 Rechercher", key="gallery_search")
    with col2:
        category = st.selectbox("Catégorie", [ALL] + all_view.categories,
                                format_func=lambda c: "Toutes les catégories" if c == ALL else c)
    with col3:
        date = st.selectbox("Date", [ALL] + all_view.dates,
                            format_func=lambda d: "Toutes les dates" if d == ALL else d)

    view = session.gallery(FilterCriteria(search_text=search, category=category, date=date))
    st.caption(f"{view.count} facture(s) trouvée(s)")
    if view.status == "no_match":
        st.warning("Aucune facture trouvée. Essayez d'ajuster vos filtres.")
        return

    for label, invoices in view.groups.items():
        st.markdown(f"#### 📅 {label} · {len(invoices)} facture(s)")
        cols = st.columns(4)
        for i, invoice in enumerate(invoices):
            with cols[i % 4]:
                with st.expander(f"{invoice.supplier or invoice.category} · {invoice.amount:.2f}€"):
                    if invoice.image_url:
                        st.image(invoice.image_url, use_container_width=True)
                    st.markdown(f"**Catégorie:** {invoice.category}")
                    if invoice.description:
                        st.markdown(f"**Description:** {invoice.description}")
                    if invoice.total_ht is not None:
                        st.markdown(f"**Total HT:** {invoice.total_ht:.2f}€")
                    if invoice.tax is not None:
                        st.markdown(f"**TVA:** {invoice.tax:.2f}€")
                    if invoice.payment_method:
                        st.markdown(f"**Paiement:** {invoice.payment_method}")
                    st.caption(f"Traité le {date_label(invoice.created_at)}")


def render_export(session):
    st.subheader("Export des factures")
    col1, col2 = st.columns(2)
    with col1:
        period = st.selectbox("Période", list(PERIOD_LABELS), format_func=PERIOD_LABELS.get)
    with col2:
        fmt = st.selectbox("Format", list(FORMAT_EXTENSIONS), format_func=str.upper)

    preview = export_preview(session.records, period, fmt)
    st.metric(f"Aperçu - {preview.label}", f"{preview.total_amount:,.2f}€", f"{preview.count} facture(s)",
              delta_color="off")
    if preview.suppliers:
        st.write(", ".join(preview.suppliers))

    if st.button("⬇️ Exporter", type="primary", disabled=preview.count == 0):
        with st.spinner("Export en cours..."):
            filename = simulate_export(session.records, period, fmt)
        st.success(f"Export réussi: {filename}")

    st.download_button(
        label="📥 CSV",
        data=records_to_csv(session.records),
        file_name=f"factures_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv",
        mime="text/csv",
        use_container_width=True,
    )


def main():
    st.set_page_config(page_title="Gestionnaire de Factures", page_icon="🧾", layout="wide")
    st.title("🧾 Gestionnaire de Factures")
    st.markdown("Analysez et organisez vos dépenses facilement")

    with st.sidebar:
        owner_id = st.text_input("Utilisateur", value=config.DASHBOARD_OWNER_ID)
        if not owner_id:
            st.warning("Renseignez un identifiant utilisateur.")
            st.stop()
        session = get_session(owner_id)
        if st.button("🔄 Actualiser", use_container_width=True):
            session.reload()
        st.caption(f"{len(session.records)} facture(s) chargée(s)")

    tab1, tab2, tab3, tab4 = st.tabs(["📊 Dashboard", "📤 Upload", "🗂️ Factures", "⬇️ Export"])
    with tab1:
        render_stats(session)
    with tab2:
        render_upload()
    with tab3:
        render_gallery(session)
    with tab4:
        render_export(session)


if __name__ == "__main__":
    main()
