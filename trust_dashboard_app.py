"""Streamlit admin dashboard for donors, donations, campaigns, and outreach."""

from __future__ import annotations

import html
from datetime import date
from typing import Any, Iterable

import pandas as pd
import streamlit as st

from trust_dashboard import (
    CampaignRepository,
    CommunicationRepository,
    DataGateway,
    DonationRepository,
    DonorRepository,
    OrgSettings,
    Settings,
    SettingsRepository,
    cents_from_amount,
    configure_logging,
    format_currency,
)
from trust_dashboard.aggregation import (
    campaign_donations,
    campaign_insights,
    campaign_rollup,
    dashboard_stats,
    donation_insights,
    donation_years,
    donor_giving_summary,
    donor_insights,
    monthly_totals,
    recent_activity,
)
from trust_dashboard.auth import AuthService, AuthSession
from trust_dashboard.calendar_events import EventCalendar, upcoming_events
from trust_dashboard.errors import AuthError, GatewayError, NotificationError
from trust_dashboard.models import (
    CAMPAIGN_STATUSES,
    DONOR_STATUSES,
    DONOR_TYPES,
    PAYMENT_METHODS,
    Campaign,
    Donor,
    amount_from_cents,
    parse_date,
)
from trust_dashboard.notifications import (
    EmailDispatcher,
    SmtpEmailSender,
    WhatsAppCloudClient,
    WhatsAppLauncher,
    personalize,
)
from trust_dashboard.table_state import (
    SORTABLE_COLUMNS,
    DonorTableState,
    RecipientSelection,
    eligible_recipients,
)
from trust_dashboard.templates import find_template, templates_for

SETTINGS = Settings.from_env()
GATEWAY = DataGateway(SETTINGS.db_path)
DONORS = DonorRepository(GATEWAY)
DONATIONS = DonationRepository(GATEWAY)
CAMPAIGNS = CampaignRepository(GATEWAY)
COMMUNICATIONS = CommunicationRepository(GATEWAY)
ORG_SETTINGS = SettingsRepository(GATEWAY)

WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]
OLDEST_BIRTH_DATE = date(1900, 1, 1)


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
          :root {
            --trust-teal-700: #1f6b5e;
            --trust-teal-600: #2a8575;
            --trust-sand-100: #f7f6f2;
            --trust-border: #e6e4dc;
            --trust-text: #1c1c1a;
          }

          .stApp {
            background: linear-gradient(170deg, var(--trust-sand-100) 0%, #ffffff 100%);
            color: var(--trust-text);
          }

          .trust-hero {
            background: linear-gradient(124deg, var(--trust-teal-700), var(--trust-teal-600));
            border-radius: 18px;
            padding: 1.1rem 1.25rem;
            margin-bottom: 1rem;
          }

          .trust-hero h1,
          .trust-hero p {
            color: #ffffff !important;
            margin: 0;
          }

          .trust-hero p {
            margin-top: 0.45rem;
            opacity: 0.92;
          }

          .metric-card {
            border-radius: 14px;
            border: 1px solid var(--trust-border);
            background: #ffffff;
            padding: 0.75rem 0.8rem;
            min-height: 108px;
          }

          .metric-label {
            margin: 0;
            font-weight: 600;
            font-size: 0.84rem;
            text-transform: uppercase;
            letter-spacing: 0.04em;
          }

          .metric-value {
            margin: 0.3rem 0 0;
            color: var(--trust-teal-700);
            font-size: 1.45rem;
            font-weight: 700;
          }

          .metric-sub {
            margin: 0.4rem 0 0;
            font-size: 0.82rem;
          }

          .trend-up { color: #1f8a4c; }
          .trend-down { color: #c0392b; }

          .section-note {
            color: #555453;
            margin-top: -0.2rem;
            margin-bottom: 0.8rem;
          }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _hero_markup(org_name: str) -> str:
    return f"""
        <div class="trust-hero">
          <h1>{html.escape(org_name)}</h1>
          <p>Donor care, giving trends, campaign progress, and outreach in one place.</p>
        </div>
        """


def _hero(org_name: str) -> None:
    st.markdown(_hero_markup(org_name), unsafe_allow_html=True)


def _render_metric_card(title: str, value: str, subtitle: str, trend: str | None = None) -> None:
    trend_class = f"trend-{trend}" if trend else ""
    st.markdown(
        f"""
        <div class="metric-card">
          <p class="metric-label">{title}</p>
          <p class="metric-value">{value}</p>
          <p class="metric-sub {trend_class}">{subtitle}</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def _section_note(text: str) -> None:
    st.markdown(f"<p class='section-note'>{text}</p>", unsafe_allow_html=True)


def _table_or_info(frame: pd.DataFrame, empty_message: str) -> None:
    if frame.empty:
        st.info(empty_message)
        return
    st.dataframe(frame, use_container_width=True, hide_index=True)


def _money(cents: int) -> float:
    return float(amount_from_cents(cents))


def _donor_option_label(donor: Donor) -> str:
    return f"{donor.name} (#{donor.id})"


def _campaign_option_label(campaign: Campaign) -> str:
    return f"{campaign.title} (Goal {format_currency(campaign.goal_cents)})"


def _show_failure(exc: Exception) -> None:
    if isinstance(exc, GatewayError):
        st.error(f"Could not reach the database: {exc}")
    else:
        st.error(str(exc))


def _editor_records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for row in frame.to_dict(orient="records"):
        cleaned = {key: (None if pd.isna(value) else value) for key, value in row.items()}
        if any(value not in (None, "") for value in cleaned.values()):
            records.append(cleaned)
    return records


def _memorial_editor(key: str, existing: Iterable[Any] = ()) -> pd.DataFrame:
    rows = [{"tag": entry.tag, "date": pd.Timestamp(entry.date) if entry.date else pd.NaT} for entry in existing]
    frame = pd.DataFrame(rows, columns=["tag", "date"])
    frame["tag"] = frame["tag"].astype("object")
    frame["date"] = pd.to_datetime(frame["date"])
    return st.data_editor(
        frame,
        num_rows="dynamic",
        use_container_width=True,
        hide_index=True,
        key=key,
        column_config={
            "tag": st.column_config.TextColumn("Occasion"),
            "date": st.column_config.DateColumn("Date", format="YYYY-MM-DD"),
        },
    )


def _memorial_entries(frame: pd.DataFrame) -> list[dict[str, Any]]:
    return [
        {"tag": row.get("tag") or "", "date": parse_date(row.get("date"))}
        for row in _editor_records(frame)
    ]


# --- Auth ---------------------------------------------------------------------------


def _auth() -> AuthService:
    if "auth_service" not in st.session_state:
        service = AuthService(GATEWAY)

        def remember(_event: str, session: AuthSession | None) -> None:
            st.session_state.auth_session = session

        service.on_auth_state_change(remember)
        st.session_state.auth_service = service
        st.session_state.auth_session = None
    return st.session_state.auth_service


def render_login() -> None:
    st.markdown("### Sign in")
    _section_note("Staff access only. Create an account the first time you use the dashboard.")

    sign_in_tab, sign_up_tab = st.tabs(["Sign In", "Create Account"])
    with sign_in_tab:
        with st.form("sign-in-form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            if st.form_submit_button("Sign In", use_container_width=True):
                try:
                    _auth().sign_in(email, password)
                    st.rerun()
                except AuthError as exc:
                    st.error(str(exc))

    with sign_up_tab:
        with st.form("sign-up-form"):
            email = st.text_input("Email", key="sign-up-email")
            password = st.text_input("Password", type="password", key="sign-up-password")
            if st.form_submit_button("Create Account", use_container_width=True):
                try:
                    _auth().sign_up(email, password)
                    st.rerun()
                except (AuthError, GatewayError) as exc:
                    _show_failure(exc)


# --- Dashboard ----------------------------------------------------------------------


def _render_insights(donors: list[Donor], donations: list, campaigns: list[Campaign]) -> None:
    donation_tab, donor_tab, campaign_tab = st.tabs(["Donation Insights", "Donor Insights", "Campaign Insights"])

    with donation_tab:
        insights = donation_insights(donations, donors)
        cols = st.columns(4)
        cols[0].metric("Total Raised", format_currency(insights["total_cents"]))
        cols[1].metric("Donations", f"{insights['count']:,}")
        cols[2].metric("Average Gift", format_currency(insights["average_cents"]))
        cols[3].metric("Largest Gift", format_currency(insights["max_cents"]))
        left, right = st.columns(2)
        with left:
            st.markdown("##### Composition")
            frame = pd.DataFrame(insights["composition"])
            if frame.empty:
                st.info("No donations yet.")
            else:
                st.bar_chart(frame.assign(value=frame["value"] / 100).set_index("name")["value"], color="#2A8575")
        with right:
            st.markdown("##### Sources by Donor Type")
            frame = pd.DataFrame(insights["sources"])
            if frame.empty:
                st.info("No donations yet.")
            else:
                st.bar_chart(frame.assign(value=frame["value"] / 100).set_index("name")["value"], color="#1F6B5E")

    with donor_tab:
        insights = donor_insights(donors, donations)
        cols = st.columns(3)
        cols[0].metric("Total Donors", f"{insights['total']:,}")
        cols[1].metric("Active Donors", f"{insights['active']:,}")
        cols[2].metric("Retention Rate", f"{insights['retention_rate']:.1f}%")
        left, right = st.columns(2)
        with left:
            st.markdown("##### Giving Frequency")
            _table_or_info(
                pd.DataFrame(insights["retention"]).rename(columns={"name": "Segment", "value": "Donors"}),
                "No donors yet.",
            )
        with right:
            st.markdown("##### Activity")
            _table_or_info(
                pd.DataFrame(insights["activity"]).rename(columns={"name": "Status", "value": "Donors"}),
                "No donors yet.",
            )

    with campaign_tab:
        insights = campaign_insights(campaigns, donations)
        cols = st.columns(3)
        cols[0].metric("Campaigns", f"{insights['total']:,}")
        cols[1].metric("Total Raised", format_currency(insights["total_raised_cents"]))
        cols[2].metric("Combined Goal", format_currency(insights["total_goal_cents"]))
        progress = pd.DataFrame(insights["progress"])
        if progress.empty:
            st.info("No campaigns yet.")
        else:
            progress["Raised"] = progress["value"] / 100
            progress["Goal"] = progress["goal"] / 100
            st.bar_chart(progress.set_index("name")[["Raised", "Goal"]], stack=False)


def _render_monthly_chart(donations: list) -> None:
    st.markdown("#### Donations by Month")
    years = donation_years(donations)
    year = st.selectbox("Year", options=years, key="dashboard-chart-year")
    monthly = pd.DataFrame(monthly_totals(donations, year))
    monthly["month"] = [pd.Timestamp(year=year, month=index + 1, day=1) for index in range(len(monthly))]
    monthly["amount"] = monthly["total_cents"] / 100
    if monthly["total_cents"].sum() == 0:
        st.info(f"No donations recorded in {year}.")
    st.bar_chart(monthly.set_index("month")["amount"], color="#2A8575")


def _render_recent_activity(donations: list, donors: list[Donor]) -> None:
    st.markdown("#### Recent Activity")
    activity_df = pd.DataFrame(
        [
            {
                "When": item.occurred_at.strftime("%Y-%m-%d"),
                "Activity": item.title,
                "Detail": item.subtitle,
                "Amount": format_currency(item.amount_cents) if item.amount_cents is not None else "-",
            }
            for item in recent_activity(donations, donors, limit=5)
        ]
    )
    _table_or_info(activity_df, "No recent activity.")


def _day_picker_bounds(today: date, year: int, month: int) -> tuple[date, date, date]:
    """Default, first, and last pickable day; the calendar only holds ``year``."""

    default_day = today if today.year == year else date(year, month, 1)
    return default_day, date(year, 1, 1), date(year, 12, 31)


def _render_calendar(donors: list[Donor]) -> None:
    st.markdown("#### Donor Calendar")
    today = date.today()
    controls = st.columns(2)
    with controls[0]:
        month = st.selectbox(
            "Month",
            options=list(range(1, 13)),
            index=today.month - 1,
            format_func=lambda value: MONTH_NAMES[value - 1],
            key="calendar-month",
        )
    with controls[1]:
        year = st.number_input("Year", min_value=1900, max_value=2200, value=today.year, step=1, key="calendar-year")

    calendar = EventCalendar.for_donors(donors, year=int(year))
    grid = calendar.month_grid(int(year), int(month))
    grid_df = pd.DataFrame(
        [
            [
                ""
                if cell is None
                else f"{cell['date'].day} • {cell['event_count']}" if cell["event_count"] else str(cell["date"].day)
                for cell in week
            ]
            for week in grid
        ],
        columns=WEEKDAY_LABELS,
    )
    st.dataframe(grid_df, use_container_width=True, hide_index=True)

    default_day, first_day, last_day = _day_picker_bounds(today, int(year), int(month))
    picked = st.date_input(
        "Events on",
        value=default_day,
        min_value=first_day,
        max_value=last_day,
        key=f"calendar-day-{int(year)}",
    )
    day_events = calendar.events_on_date(picked)
    events_df = pd.DataFrame(
        [{"Type": event.type.title(), "Event": event.description} for event in day_events]
    )
    _table_or_info(events_df, "No events on this day.")

    st.markdown("##### Next 30 Days")
    upcoming = upcoming_events(donors, today=today, days=30)
    upcoming_df = pd.DataFrame(
        [
            {"Date": event.date.isoformat(), "Type": event.type.title(), "Event": event.description}
            for event in upcoming
        ]
    )
    _table_or_info(upcoming_df, "No birthdays, anniversaries, or memorials in the next 30 days.")


def render_dashboard() -> None:
    donors = DONORS.list()
    donations = DONATIONS.list()
    campaigns = CAMPAIGNS.list()

    cards = dashboard_stats(donors, donations, campaigns)
    columns = st.columns(len(cards))
    for column, card in zip(columns, cards):
        with column:
            arrow = "▲" if card.trend == "up" else "▼"
            _render_metric_card(card.title, card.value, f"{arrow} {card.change} vs last month", card.trend)

    with st.expander("Insights"):
        _render_insights(donors, donations, campaigns)

    left, right = st.columns([1.3, 1], gap="large")
    with left:
        _render_monthly_chart(donations)
    with right:
        _render_recent_activity(donations, donors)

    _render_calendar(donors)


# --- Donors -------------------------------------------------------------------------


def _donor_form(prefix: str, donor: Donor | None = None) -> dict[str, Any]:
    name = st.text_input("Full Name *", value=donor.name if donor else "", key=f"{prefix}-name")
    email = st.text_input("Email *", value=(donor.email or "") if donor else "", key=f"{prefix}-email")
    phone = st.text_input("Phone *", value=(donor.phone or "") if donor else "", key=f"{prefix}-phone")
    donor_type = st.selectbox(
        "Donor Type",
        DONOR_TYPES,
        index=DONOR_TYPES.index(donor.type) if donor else 0,
        key=f"{prefix}-type",
    )
    status = st.selectbox(
        "Status",
        DONOR_STATUSES,
        index=DONOR_STATUSES.index(donor.status) if donor else 0,
        key=f"{prefix}-status",
    )
    birth_date = st.date_input(
        "Birth Date *",
        value=donor.birth_date if donor else None,
        min_value=OLDEST_BIRTH_DATE,
        max_value=date.today(),
        key=f"{prefix}-birth",
    )
    anniversary_date = st.date_input(
        "Anniversary",
        value=donor.anniversary_date if donor else None,
        min_value=OLDEST_BIRTH_DATE,
        key=f"{prefix}-anniversary",
    )
    social = st.text_input(
        "Social Media Handle",
        value=(donor.social_media_handle or "") if donor else "",
        key=f"{prefix}-social",
    )
    st.caption("Memorial dates")
    memorials = _memorial_editor(f"{prefix}-memorials", donor.memorial_dates if donor else ())
    return {
        "name": name,
        "email": email,
        "phone": phone,
        "donor_type": donor_type,
        "status": status,
        "birth_date": birth_date,
        "anniversary_date": anniversary_date,
        "social_media_handle": social,
        "memorial_dates": _memorial_entries(memorials),
    }


def _table_state() -> DonorTableState:
    if "donor_table_state" not in st.session_state:
        st.session_state.donor_table_state = DonorTableState()
    return st.session_state.donor_table_state


def _render_donor_detail(donor: Donor, donations: list) -> None:
    summary = donor_giving_summary(donor.id, donations)
    cols = st.columns(3)
    cols[0].metric("Lifetime Giving", format_currency(summary["total_cents"]))
    cols[1].metric("Gifts", str(summary["gift_count"]))
    last = summary["last_donation_date"]
    cols[2].metric("Last Gift", last.isoformat() if last else "-")
    st.caption(
        f"Contact: {donor.email or '-'} | {donor.phone or '-'} | "
        f"Social: {donor.social_media_handle or '-'}"
    )

    history_left, history_right = st.columns(2, gap="large")
    with history_left:
        st.markdown("##### Donation History")
        history_df = pd.DataFrame(
            [
                {
                    "Date": row.donation_date.isoformat() if row.donation_date else "-",
                    "Type": "In-Kind" if row.is_in_kind else "Monetary",
                    "Amount": format_currency(row.amount_cents),
                    "Campaign": row.campaign_title or "-",
                }
                for row in donations
                if row.donor_id == donor.id
            ]
        )
        _table_or_info(history_df, "No donations from this donor yet.")
    with history_right:
        st.markdown("##### Communications")
        comms_df = pd.DataFrame(
            [
                {
                    "Sent": row.sent_at.strftime("%Y-%m-%d %H:%M") if row.sent_at else "-",
                    "Channel": row.channel,
                    "Subject": row.subject or "-",
                    "Status": row.status,
                }
                for row in COMMUNICATIONS.list(donor_id=donor.id, limit=25)
            ]
        )
        _table_or_info(comms_df, "No messages sent to this donor yet.")

    with st.expander("Edit donor"):
        with st.form(f"donor-edit-form-{donor.id}"):
            values = _donor_form(f"donor-edit-{donor.id}", donor)
            if st.form_submit_button("Save Changes", use_container_width=True):
                try:
                    DONORS.update(donor.id, **values)
                    st.success("Donor updated.")
                    st.rerun()
                except (ValueError, GatewayError) as exc:
                    _show_failure(exc)

    confirm = st.checkbox("I understand this also deletes the donor's donations", key=f"donor-delete-confirm-{donor.id}")
    if st.button("Delete Donor", disabled=not confirm, key=f"donor-delete-{donor.id}"):
        try:
            DONORS.delete(donor.id)
            st.success("Donor deleted.")
            st.rerun()
        except GatewayError as exc:
            _show_failure(exc)


def render_donors_tab() -> None:
    st.markdown("### Donors")
    _section_note("Register donors, keep their dates, and review their giving.")

    left, right = st.columns([1, 1.4], gap="large")
    with left:
        st.markdown("#### Add Donor")
        with st.form("donor-create-form", clear_on_submit=True):
            values = _donor_form("donor-create")
            if st.form_submit_button("Add Donor", use_container_width=True):
                try:
                    DONORS.add(**values)
                    st.success("Donor added.")
                    st.rerun()
                except (ValueError, GatewayError) as exc:
                    _show_failure(exc)

    with right:
        state = _table_state()
        search_col, sort_col, toggle_col = st.columns([2, 1.2, 0.8])
        with search_col:
            query = st.text_input("Search donors", value=state.search_query, placeholder="Name or email")
        with sort_col:
            column = st.selectbox(
                "Sort by",
                options=list(SORTABLE_COLUMNS),
                index=SORTABLE_COLUMNS.index(state.sort_column) if state.sort_column else 0,
                format_func=lambda value: value.replace("_", " ").title(),
            )
        with toggle_col:
            st.markdown("<br>", unsafe_allow_html=True)
            arrow = "↑" if state.ascending else "↓"
            if st.button(f"Sort {arrow}", use_container_width=True):
                state = state.toggle_sort(column)
        state = state.with_search(query)
        st.session_state.donor_table_state = state

        donors = DONORS.list()
        visible = state.apply(donors)
        directory_df = pd.DataFrame(
            [
                {
                    "ID": donor.id,
                    "Name": donor.name,
                    "Email": donor.email or "-",
                    "Phone": donor.phone or "-",
                    "Type": donor.type,
                    "Status": donor.status,
                    "Joined": donor.created_at.strftime("%Y-%m-%d") if donor.created_at else "-",
                }
                for donor in visible
            ]
        )
        _table_or_info(directory_df, "No donors match. Add your first donor on the left.")

        if visible:
            donor_map = {donor.id: donor for donor in visible}
            selected_id = st.selectbox(
                "Open Donor",
                options=list(donor_map.keys()),
                format_func=lambda donor_id: _donor_option_label(donor_map[donor_id]),
            )
            _render_donor_detail(donor_map[selected_id], DONATIONS.list(donor_id=selected_id))


# --- Donations ----------------------------------------------------------------------


def render_donations_tab() -> None:
    st.markdown("### Donations")
    _section_note("Record monetary gifts and in-kind contributions.")

    donors = DONORS.list()
    campaigns = CAMPAIGNS.list()
    if not donors:
        st.info("Add a donor first, then record donations.")
        return

    donor_map = {donor.id: donor for donor in donors}
    campaign_map = {campaign.id: campaign for campaign in campaigns}

    donation_type = st.radio(
        "Donation Type",
        options=["monetary", "in-kind"],
        format_func=lambda value: "Monetary" if value == "monetary" else "In-Kind",
        horizontal=True,
        key="donation-type",
    )

    with st.form("donation-create-form", clear_on_submit=True):
        left, right = st.columns(2)
        with left:
            donor_id = st.selectbox(
                "Donor",
                options=list(donor_map.keys()),
                format_func=lambda item_id: _donor_option_label(donor_map[item_id]),
            )
            campaign_id = st.selectbox(
                "Campaign",
                options=[None] + list(campaign_map.keys()),
                format_func=(
                    lambda item_id: "None"
                    if item_id is None
                    else _campaign_option_label(campaign_map[item_id])
                ),
            )
            donation_date = st.date_input("Donation Date", value=date.today())
        with right:
            payment_method = None
            items_frame = None
            if donation_type == "monetary":
                amount = st.number_input("Amount (₹)", min_value=0.0, step=100.0, format="%.2f")
                payment_method = st.selectbox("Payment Method", PAYMENT_METHODS)
            else:
                amount = st.number_input("Estimated Value (₹)", min_value=0.0, step=100.0, format="%.2f")
                items_frame = st.data_editor(
                    pd.DataFrame(
                        {
                            "item": pd.Series(dtype="object"),
                            "quantity": pd.Series(dtype="float"),
                            "unit": pd.Series(dtype="object"),
                        }
                    ),
                    num_rows="dynamic",
                    use_container_width=True,
                    hide_index=True,
                    key="donation-items",
                )

        if st.form_submit_button("Record Donation", use_container_width=True):
            amount_cents = cents_from_amount(amount) if amount else None
            items = _editor_records(items_frame) if items_frame is not None else []
            try:
                DONATIONS.add(
                    donor_id=donor_id,
                    donation_date=donation_date,
                    donation_type=donation_type,
                    amount_cents=amount_cents,
                    payment_method=payment_method,
                    items=items,
                    campaign_id=campaign_id,
                )
                st.success("Donation recorded.")
                st.rerun()
            except (ValueError, GatewayError) as exc:
                _show_failure(exc)

    st.markdown("#### All Donations")
    donations = DONATIONS.list()
    donation_df = pd.DataFrame(
        [
            {
                "Date": row.donation_date.isoformat() if row.donation_date else "-",
                "Donor": row.donor_name or "Unknown",
                "Type": "In-Kind" if row.is_in_kind else "Monetary",
                "Amount": format_currency(row.amount_cents),
                "Payment": row.payment_method or "-",
                "Items": ", ".join(
                    f"{entry.quantity:g} {entry.unit} {entry.item}".replace("  ", " ").strip()
                    for entry in row.items
                )
                or "-",
                "Campaign": row.campaign_title or "-",
            }
            for row in donations
        ]
    )
    _table_or_info(donation_df, "No donations recorded yet.")


# --- Campaigns ----------------------------------------------------------------------


def _campaign_form(prefix: str, campaign: Campaign | None = None) -> dict[str, Any]:
    title = st.text_input("Title *", value=campaign.title if campaign else "", key=f"{prefix}-title")
    description = st.text_area(
        "Description *",
        value=campaign.description if campaign else "",
        height=90,
        key=f"{prefix}-description",
    )
    goal = st.number_input(
        "Goal Amount (₹) *",
        min_value=0.0,
        value=_money(campaign.goal_cents) if campaign else 0.0,
        step=1000.0,
        format="%.2f",
        key=f"{prefix}-goal",
    )
    deadline = st.date_input("Target Date", value=campaign.deadline if campaign else None, key=f"{prefix}-deadline")
    status = st.selectbox(
        "Status",
        CAMPAIGN_STATUSES,
        index=CAMPAIGN_STATUSES.index(campaign.status) if campaign else 0,
        key=f"{prefix}-status",
    )
    return {
        "title": title,
        "description": description,
        "goal_cents": cents_from_amount(goal),
        "deadline": deadline,
        "status": status,
    }


def render_campaigns_tab() -> None:
    st.markdown("### Campaigns")
    _section_note("Set fundraising goals and watch progress as donations come in.")

    left, right = st.columns([1, 1.4], gap="large")
    with left:
        with st.form("campaign-create-form", clear_on_submit=True):
            values = _campaign_form("campaign-create")
            if st.form_submit_button("Create Campaign", use_container_width=True):
                try:
                    CAMPAIGNS.add(**values)
                    st.success("Campaign created.")
                    st.rerun()
                except (ValueError, GatewayError) as exc:
                    _show_failure(exc)

    campaigns = CAMPAIGNS.list()
    donations = DONATIONS.list()
    rollup = campaign_rollup(campaigns, donations)

    with right:
        if not rollup:
            st.info("No campaigns yet. Create your first campaign.")
        for item in rollup:
            campaign = item.campaign
            with st.container(border=True):
                st.markdown(f"**{campaign.title}** · {item.status}")
                st.progress(item.bar_percent / 100, text=f"{item.progress_percent}% of {format_currency(campaign.goal_cents)}")
                st.caption(
                    f"Raised {format_currency(item.raised_cents)} from {item.donor_count} donor(s) · "
                    f"Remaining {format_currency(item.remaining_cents)} · "
                    f"Target {campaign.deadline.isoformat() if campaign.deadline else '-'}"
                )

    if not campaigns:
        return

    st.markdown("#### Campaign Details")
    campaign_map = {campaign.id: campaign for campaign in campaigns}
    selected_id = st.selectbox(
        "Campaign",
        options=list(campaign_map.keys()),
        format_func=lambda item_id: campaign_map[item_id].title,
        key="campaign-detail",
    )
    selected = campaign_map[selected_id]
    st.write(selected.description or "No description.")
    linked_df = pd.DataFrame(
        [
            {
                "Date": row.donation_date.isoformat() if row.donation_date else "-",
                "Donor": row.donor_name or "Unknown",
                "Amount": format_currency(row.amount_cents),
            }
            for row in campaign_donations(selected_id, donations)
        ]
    )
    _table_or_info(linked_df, "No donations linked to this campaign yet.")

    with st.expander("Edit campaign"):
        with st.form(f"campaign-edit-form-{selected_id}"):
            values = _campaign_form(f"campaign-edit-{selected_id}", selected)
            if st.form_submit_button("Save Changes", use_container_width=True):
                try:
                    CAMPAIGNS.update(selected_id, **values)
                    st.success("Campaign updated.")
                    st.rerun()
                except (ValueError, GatewayError) as exc:
                    _show_failure(exc)

    if st.button("Delete Campaign", key=f"campaign-delete-{selected_id}"):
        try:
            CAMPAIGNS.delete(selected_id)
            st.success("Campaign deleted. Its donations are kept without a campaign.")
            st.rerun()
        except GatewayError as exc:
            _show_failure(exc)


# --- Communication ------------------------------------------------------------------


def _selection() -> RecipientSelection:
    if "recipient_selection" not in st.session_state:
        st.session_state.recipient_selection = RecipientSelection()
    return st.session_state.recipient_selection


def _pick_key(channel: str, donor_id: int) -> str:
    return f"pick-{channel}-{donor_id}"


def _toggle_recipient(channel: str, donor_id: int) -> None:
    st.session_state.pop("whatsapp_url", None)
    st.session_state.recipient_selection = _selection().toggle(donor_id)


def _toggle_all_recipients(channel: str, donor_ids: list[int]) -> None:
    st.session_state.pop("whatsapp_url", None)
    selection = _selection().toggle_all(donor_ids)
    st.session_state.recipient_selection = selection
    for donor_id in donor_ids:
        st.session_state[_pick_key(channel, donor_id)] = donor_id in selection


def _reset_composer() -> None:
    st.session_state.pop("whatsapp_url", None)
    st.session_state.recipient_selection = RecipientSelection()
    for key in [key for key in st.session_state if str(key).startswith("pick-")]:
        del st.session_state[key]
    st.session_state["compose-template"] = None
    st.session_state["compose-subject"] = ""
    st.session_state["compose-body"] = ""


def _apply_template(channel: str) -> None:
    template = find_template(channel, st.session_state.get("compose-template") or "")
    if template is None:
        return
    st.session_state["compose-subject"] = template.subject or ""
    st.session_state["compose-body"] = template.content


def _render_recipient_picker(channel: str, donors: list[Donor]) -> list[Donor]:
    query = st.text_input("Find recipients", placeholder="Name, email, or phone", key=f"recipient-search-{channel}")
    candidates = eligible_recipients(donors, channel, query)
    candidate_ids = [donor.id for donor in candidates]
    selection = _selection()

    label = "Clear all" if selection.all_selected(candidate_ids) else "Select all"
    st.button(
        label,
        key=f"recipient-toggle-all-{channel}",
        on_click=_toggle_all_recipients,
        args=(channel, candidate_ids),
        disabled=not candidates,
    )

    if not candidates:
        contact = "email address" if channel == "Email" else "phone number"
        st.info(f"No donors with an {contact} match.")
    for donor in candidates:
        key = _pick_key(channel, donor.id)
        if key not in st.session_state:
            st.session_state[key] = donor.id in selection
        contact = donor.email if channel == "Email" else donor.phone
        st.checkbox(
            f"{donor.name} · {contact}",
            key=key,
            on_change=_toggle_recipient,
            args=(channel, donor.id),
        )

    chosen = _selection().pick(donors)
    st.caption(f"{len(chosen)} recipient(s) selected")
    return chosen


def _send_email_batch(recipients: list[Donor], subject: str, body: str) -> None:
    try:
        sender = SmtpEmailSender.from_settings(SETTINGS)
    except NotificationError as exc:
        st.error(str(exc))
        return

    dispatcher = EmailDispatcher(
        sender=sender,
        delay_seconds=SETTINGS.send_delay_seconds,
        communications=COMMUNICATIONS,
    )
    with st.spinner(f"Sending {len(recipients)} email(s)..."):
        report = dispatcher.send_batch(recipients, subject, body)

    if report.all_failed:
        st.error("Failed to send all emails")
    elif report.fail_count:
        st.warning(report.summary)
    else:
        st.success(report.summary)


def _render_whatsapp_cloud(recipients: list[Donor]) -> None:
    with st.expander("Send approved template (WhatsApp Cloud API)"):
        with st.form("whatsapp-cloud-form"):
            template = st.text_input("Template name", placeholder="donation_thanks")
            language = st.text_input("Language code", value="en_US")
            submitted = st.form_submit_button("Send Template", disabled=not recipients)
        if not submitted:
            return
        if not template.strip():
            st.error("Template name is required.")
            return
        client = WhatsAppCloudClient.from_settings(SETTINGS)
        with st.spinner(f"Sending template to {len(recipients)} donor(s)..."):
            report = client.send_template_batch(
                recipients,
                template.strip(),
                language=language.strip() or "en_US",
                communications=COMMUNICATIONS,
            )
        message = f"Sent {report.success_count} WhatsApp messages, failed {report.fail_count}"
        if report.all_failed:
            st.error(message)
        elif report.fail_count:
            st.warning(message)
        else:
            st.success(message)


def _render_whatsapp_links(recipients: list[Donor], body: str) -> None:
    if SETTINGS.has_whatsapp_credentials:
        _render_whatsapp_cloud(recipients)
    launcher = WhatsAppLauncher(communications=COMMUNICATIONS)
    if len(recipients) != 1:
        st.info("WhatsApp opens one chat at a time. Select a single recipient.")
        return
    donor = recipients[0]
    if st.button("Prepare WhatsApp Chat", disabled=not body.strip()):
        try:
            st.session_state.whatsapp_url = launcher.open_chat(donor, body)
        except (NotificationError, GatewayError) as exc:
            _show_failure(exc)
    url = st.session_state.get("whatsapp_url")
    if url:
        st.link_button(f"Open WhatsApp for {donor.name}", url, use_container_width=True)


def render_communication_tab() -> None:
    st.markdown("### Communication")
    _section_note("Send personalised emails or open WhatsApp chats. Use {{name}} for the donor's name.")

    channel = st.radio(
        "Channel",
        options=["Email", "WhatsApp"],
        horizontal=True,
        key="compose-channel",
        on_change=_reset_composer,
    )
    donors = DONORS.list()

    left, right = st.columns([1, 1.6], gap="large")
    with left:
        st.markdown("#### Recipients")
        recipients = _render_recipient_picker(channel, donors)

    with right:
        st.markdown("#### Message")
        gallery = templates_for(channel)
        template_names = {template.id: template.name for template in gallery}
        st.selectbox(
            "Template",
            options=[None] + list(template_names.keys()),
            format_func=lambda template_id: "Blank message" if template_id is None else template_names[template_id],
            key="compose-template",
            on_change=_apply_template,
            args=(channel,),
        )
        subject = ""
        if channel == "Email":
            subject = st.text_input("Subject", key="compose-subject")
        body = st.text_area("Message", height=220, key="compose-body")

        if recipients and body.strip():
            with st.expander("Preview for first recipient"):
                if subject:
                    st.markdown(f"**{personalize(subject, recipients[0].name)}**")
                st.text(personalize(body, recipients[0].name))

        if channel == "Email":
            ready = bool(recipients) and bool(subject.strip()) and bool(body.strip())
            if st.button("Send Emails", disabled=not ready, use_container_width=True):
                _send_email_batch(recipients, subject, body)
        else:
            _render_whatsapp_links(recipients, body)

    st.markdown("#### Communication Log")
    log_df = pd.DataFrame(
        [
            {
                "Sent": row.sent_at.strftime("%Y-%m-%d %H:%M") if row.sent_at else "-",
                "Donor": row.donor_name or "-",
                "Channel": row.channel,
                "Subject": row.subject or "-",
                "Status": row.status,
            }
            for row in COMMUNICATIONS.list(limit=50)
        ]
    )
    _table_or_info(log_df, "No messages sent yet.")


# --- Settings -----------------------------------------------------------------------


def render_settings_tab() -> None:
    st.markdown("### Settings")
    _section_note("Organisation details used across the dashboard and outreach.")

    current = ORG_SETTINGS.get()
    with st.form("settings-form"):
        left, right = st.columns(2)
        with left:
            org_name = st.text_input("Organisation Name *", value=current.org_name)
            org_email = st.text_input("Email", value=current.org_email)
            org_phone = st.text_input("Phone", value=current.org_phone)
            website = st.text_input("Website", value=current.website)
        with right:
            org_address = st.text_area("Address", value=current.org_address, height=110)
            upi_id = st.text_input("UPI ID", value=current.upi_id)
            razorpay_key = st.text_input("Razorpay Key", value=current.razorpay_key, type="password")
        notifications_enabled = st.toggle("Event reminders", value=current.notifications_enabled)

        if st.form_submit_button("Save Settings", use_container_width=True):
            try:
                ORG_SETTINGS.save(
                    OrgSettings(
                        id=current.id,
                        org_name=org_name,
                        org_email=org_email,
                        org_phone=org_phone,
                        org_address=org_address,
                        website=website,
                        upi_id=upi_id,
                        razorpay_key=razorpay_key,
                        notifications_enabled=notifications_enabled,
                    )
                )
                st.success("Settings saved.")
            except (ValueError, GatewayError) as exc:
                _show_failure(exc)


def main() -> None:
    configure_logging(SETTINGS.log_level)
    st.set_page_config(
        page_title="Trust Dashboard",
        page_icon=":handshake:",
        layout="wide",
    )
    try:
        GATEWAY.init_db()
    except GatewayError as exc:
        st.error(f"Could not open the database: {exc}")
        st.stop()

    _inject_styles()
    auth = _auth()
    session: AuthSession | None = st.session_state.get("auth_session")
    if session is None:
        _hero("Trust Dashboard")
        render_login()
        return

    with st.sidebar:
        st.markdown(f"Signed in as **{session.email}**")
        if st.button("Sign Out", use_container_width=True):
            auth.sign_out()
            st.rerun()

    _hero(ORG_SETTINGS.get().org_name or "Trust Dashboard")
    tabs = st.tabs(["Dashboard", "Donors", "Donations", "Campaigns", "Communication", "Settings"])
    with tabs[0]:
        render_dashboard()
    with tabs[1]:
        render_donors_tab()
    with tabs[2]:
        render_donations_tab()
    with tabs[3]:
        render_campaigns_tab()
    with tabs[4]:
        render_communication_tab()
    with tabs[5]:
        render_settings_tab()


if __name__ == "__main__":
    main()
