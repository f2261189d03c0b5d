import datetime

import httpx
import pandas as pd
import streamlit as st

st.set_page_config(page_title="Cycle Tracker", layout="wide")
st.markdown("<h1 style='color:#e56b8f;'>Cycle Tracker - Log. Learn. Look after yourself.</h1>",
            unsafe_allow_html=True)
st.caption("Educational demo only. Predictions are estimates, not medical advice.")

api = st.text_input("API Base URL", "http://127.0.0.1:8000")


def request(method: str, path: str, **kwargs):
    kwargs.setdefault("timeout", 30.0)
    return httpx.request(method, api + path, **kwargs)


def headers():
    tok = st.session_state.get("token")
    return {"Authorization": f"Bearer {tok}"} if tok else {}


def error_text(r) -> str:
    try:
        return r.json().get("error") or r.text
    except ValueError:
        return r.text


# ---- Auth ----
st.markdown("<h2 style='color:#fdd365;'>Sign up / Login</h2>",
            unsafe_allow_html=True)
name = st.text_input("Name", "Sam")
email = st.text_input("Email", "sam@example.com")
password = st.text_input("Password", "demo1234", type="password")
c1, c2, c3 = st.columns(3)
with c1:
    if st.button("Sign up"):
        r = request('POST', "/api/auth/signup",
                    json={"name": name, "email": email, "password": password})
        if r.status_code == 201:
            st.session_state["token"] = r.json()["access_token"]
            st.session_state["user"] = r.json()["user"]
            st.success("Signed up & logged in")
            st.rerun()
        else:
            st.error(error_text(r))
with c2:
    if st.button("Login"):
        r = request('POST', "/api/auth/login",
                    json={"email": email, "password": password})
        if r.status_code == 200:
            st.session_state["token"] = r.json()["access_token"]
            st.session_state["user"] = r.json()["user"]
            st.success("Logged in")
            st.rerun()
        else:
            st.error(error_text(r))
with c3:
    if st.button("Logout"):
        st.session_state.pop("token", None)
        st.session_state.pop("user", None)
        st.success("Logged out")
        st.rerun()

if "token" not in st.session_state:
    st.stop()
uid = st.session_state["user"]["id"]
user_api = f"/api/users/{uid}"


# ---- Dashboard ----
st.divider()
st.markdown("<h2 style='color:#9b8cff;'>Dashboard</h2>",
            unsafe_allow_html=True)
rd = request('GET', user_api + "/dashboard", headers=headers())
if rd.status_code == 200:
    d = rd.json()
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Current streak", f"{d['current_streak']} days")
    m2.metric("Longest streak", f"{d['longest_streak']} days")
    m3.metric("Cycle day", d["current_cycle_day"] or "-")
    m4.metric("Next period", d["next_period"] or "-")
    if d.get("fertile_window"):
        st.caption(f"Fertile window: {d['fertile_window']}")
    if d.get("affirmation"):
        st.info(d["affirmation"])
    if d["badges"]:
        st.write("Badges: " + ", ".join(d["badges"]))
else:
    st.warning("Dashboard unavailable.")


# ---- Daily log ----
st.divider()
st.markdown("<h2 style='color:#3478e5;'>Log Your Day</h2>",
            unsafe_allow_html=True)

MOODS = {"happy": "😄", "content": "🙂", "neutral": "😐",
         "sad": "😢", "angry": "😠", "anxious": "😰"}

rs = request('GET', "/api/symptoms")
symptom_names = [s["name"] for s in rs.json()] if rs.status_code == 200 else []

with st.form("daily_log"):
    day = st.date_input("Day", datetime.date.today())
    mood = st.radio("Mood", list(MOODS.keys()), horizontal=True,
                    format_func=lambda k: f"{MOODS[k]} {k.capitalize()}")
    cl1, cl2 = st.columns(2)
    with cl1:
        pain = st.slider("Pain level", 0, 10, 0)
        energy = st.slider("Energy level", 0, 10, 5)
        on_period = st.checkbox("On my period today")
    with cl2:
        water = st.number_input("Water (glasses)", min_value=0, max_value=30, value=6)
        sleep = st.number_input("Sleep (hours)", min_value=0.0, max_value=24.0, value=8.0, step=0.5)
        exercise = st.number_input("Exercise (minutes)", min_value=0, max_value=600, value=0, step=5)
    symptoms = st.multiselect("Symptoms", symptom_names)
    notes = st.text_area("Notes", "")
    if st.form_submit_button("Save log"):
        r = request('POST', "/api/daily-logs", json={
            "day": day.isoformat(), "mood": mood, "pain_level": pain, "energy_level": energy,
            "water_intake": int(water), "sleep_hours": float(sleep),
            "exercise_minutes": int(exercise), "is_on_period": on_period,
            "symptoms": symptoms, "notes": notes or None,
        }, headers=headers())
        if r.status_code == 201:
            body = r.json()
            st.success("Log saved")
            for b in body.get("new_badges", []):
                st.balloons()
                st.success(f"New badge: {b}")
        else:
            st.error(error_text(r))


# ---- Calendar ----
st.divider()
st.markdown("<h2 style='color:#e56b8f;'>Calendar & Predictions</h2>",
            unsafe_allow_html=True)
today = datetime.date.today()
cy, cm = st.columns(2)
with cy:
    year = st.number_input("Year", min_value=2000, max_value=2100, value=today.year)
with cm:
    month = st.number_input("Month", min_value=1, max_value=12, value=today.month)

rc = request('GET', user_api + "/calendar", params={"year": int(year), "month": int(month)},
             headers=headers())
if rc.status_code == 200:
    cal = rc.json()
    pred = cal["predictions"]
    p1, p2, p3 = st.columns(3)
    p1.metric("Next period", pred["next_period"] or "-")
    p2.metric("Ovulation", pred["ovulation"] or "-")
    p3.metric("Cycle length", f"{pred['cycle_length']} days")
    if pred.get("fertile_window"):
        st.caption(f"Fertile window: {pred['fertile_window']}")

    stats = cal["monthly_stats"]
    st.caption(f"{stats['logged_days']} days logged, {stats['period_days']} period days, "
               f"avg pain {stats['avg_pain']}, avg energy {stats['avg_energy']}")
    if cal["logs"]:
        df = pd.DataFrame(cal["logs"])[["day", "mood", "pain_level", "energy_level", "is_on_period"]]
        st.dataframe(df, hide_index=True, use_container_width=True)
    else:
        st.caption("No logs this month yet.")
else:
    st.warning("Calendar unavailable.")


# ---- Insights ----
st.divider()
st.markdown("<h2 style='color:#2eb5a3;'>Insights</h2>",
            unsafe_allow_html=True)
ri = request('GET', user_api + "/insights", headers=headers())
if ri.status_code == 200:
    ins = ri.json()
    i1, i2, i3 = st.columns(3)
    i1.metric("Days logged (3 months)", ins["total_logged"])
    i2.metric("Avg pain", ins["avg_pain_level"])
    i3.metric("Avg energy", ins["avg_energy_level"])
    g1, g2 = st.columns(2)
    with g1:
        st.caption("Symptoms")
        if ins["symptoms"]:
            st.bar_chart(pd.DataFrame(ins["symptoms"]).set_index("name"))
        else:
            st.caption("_None yet_")
    with g2:
        st.caption("Moods")
        if ins["moods"]:
            st.bar_chart(pd.DataFrame(ins["moods"]).set_index("name"))
        else:
            st.caption("_None yet_")

rb = request('GET', user_api + "/badges", headers=headers())
rch = request('GET', user_api + "/challenges", headers=headers())
if rb.status_code == 200:
    b = rb.json()
    st.write(f"**Badges** {b['stats']['total_earned']} / {b['stats']['total_available']}")
    st.markdown(" ".join(f"{x.get('icon') or ''} {x['name']}" for x in b["earned"]) or "_No badges yet_")
if rch.status_code == 200:
    for ch in rch.json()["challenges"]:
        done = " ✅" if ch["is_completed"] else ""
        st.progress(ch["progress_percentage"] / 100,
                    text=f"{ch['title']}: {ch['current_progress']} / {ch['target']} {ch['target_type']}{done}")


# ---- Notifications ----
st.divider()
st.markdown("<h2 style='color:#f49d37;'>Notifications</h2>",
            unsafe_allow_html=True)
rn = request('GET', user_api + "/notifications", params={"limit": 20}, headers=headers())
if rn.status_code == 200:
    nl = rn.json()
    st.caption(f"{nl['unread_count']} unread")
    if nl["unread_count"] and st.button("Mark all as read"):
        request('POST', user_api + "/notifications/bulk",
                json={"action": "markAllAsRead"}, headers=headers())
        st.rerun()
    for n in nl["notifications"]:
        box = st.container(border=True)
        c1, c2, c3 = box.columns([6, 1, 1])
        with c1:
            weight = "normal" if n["is_read"] else "bold"
            st.markdown(f"<span style='font-weight:{weight}'>{n['title']}</span>",
                        unsafe_allow_html=True)
            if n.get("message"):
                st.caption(n["message"])
        with c2:
            if not n["is_read"] and st.button("Read", key=f"read_{n['id']}"):
                request('PATCH', user_api + f"/notifications/{n['id']}",
                        json={"is_read": True}, headers=headers())
                st.rerun()
        with c3:
            if st.button("🗑", key=f"del_{n['id']}"):
                request('DELETE', user_api + f"/notifications/{n['id']}", headers=headers())
                st.rerun()
    if not nl["notifications"]:
        st.caption("_Nothing here yet_")


# ---- Reminder settings ----
show_reminders = st.toggle("Toggle to change reminder settings", value=False)
if show_reminders:
    st.markdown("<h2 style='color:#9b8cff;'>Reminders</h2>",
                unsafe_allow_html=True)
    rr = request('GET', user_api + "/reminder-settings", headers=headers())
    existing = {r["type"]: r for r in rr.json()} if rr.status_code == 200 else {}
    for kind, label in (("log", "Daily log reminder"), ("period", "Period reminders"),
                        ("insight", "Cycle insights"), ("achievement", "Achievements")):
        cur = existing.get(kind)
        c1, c2 = st.columns([3, 1])
        with c1:
            enabled = st.checkbox(label, value=cur["is_enabled"] if cur else True, key=f"rem_{kind}")
        with c2:
            at = None
            if kind == "log":
                default = datetime.time.fromisoformat(cur["time"]) if cur and cur.get("time") else datetime.time(20, 0)
                at = st.time_input("Time", default, key="rem_log_time").strftime("%H:%M")
        if st.button("Save", key=f"save_{kind}"):
            body = {"is_enabled": enabled}
            if at:
                body["time"] = at
            if cur:
                r = request('PUT', user_api + f"/reminder-settings/{cur['id']}", json=body, headers=headers())
            else:
                r = request('POST', user_api + "/reminder-settings", json={"type": kind, **body},
                            headers=headers())
            if r.status_code in (200, 201):
                st.success("Saved")
            else:
                st.error(error_text(r))


# ---- To-Do List Section ----
st.divider()
st.markdown("<h2 style='color:#5aa9e6;'>Self-care To-Do List</h2>",
            unsafe_allow_html=True)

PRIORITY_COLORS = {"high": "#f44336", "medium": "#ff9800", "low": "#4CAF50"}

todo_new = st.text_input("Add a task", "")
colP, colBtn = st.columns([1, 1])
with colP:
    priority = st.selectbox("Priority", ["low", "medium", "high"], index=1)
with colBtn:
    if st.button("Add"):
        if todo_new.strip():
            r = request('POST', "/api/todos", json={"title": todo_new.strip(), "priority": priority},
                        headers=headers())
            if r.status_code == 201:
                st.success("Task added")
                st.rerun()
            else:
                st.error(error_text(r))
        else:
            st.info("Enter a task title.")

lr = request('GET', "/api/todos", headers=headers())
if lr.status_code == 200:
    data = lr.json()
    stats = data["stats"]
    st.caption(f"{stats['completed']} of {stats['total']} done")
    todos = [t for t in data["todos"] if not t["is_completed"]] + \
        [t for t in data["todos"] if t["is_completed"]]
    for t in todos:
        box = st.container(border=True)
        c1, c2, c3 = box.columns([6, 2, 1])
        with c1:
            color = PRIORITY_COLORS.get(t["priority"], "#666")
            title = f"~~{t['title']}~~" if t["is_completed"] else t["title"]
            st.markdown(
                f"<span style='background:{color}; color:white; padding:2px 6px; border-radius:6px; "
                f"font-size:12px'>{t['priority']}</span>", unsafe_allow_html=True)
            st.markdown(title)
        with c2:
            if st.button("Undo" if t["is_completed"] else "Done", key=f"todo_{t['id']}"):
                request('PATCH', f"/api/todos/{t['id']}",
                        json={"is_completed": not t["is_completed"]}, headers=headers())
                st.rerun()
        with c3:
            if st.button("🗑", key=f"todo_del_{t['id']}"):
                request('DELETE', f"/api/todos/{t['id']}", headers=headers())
                st.rerun()
    if not todos:
        st.caption("_None_")
