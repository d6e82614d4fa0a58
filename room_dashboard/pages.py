"""Embedded HTML pages for the dashboard and the map editor.

The pages are kept inline rather than in templates or static files so the
service needs no frontend build chain. Each page is a single document with
its own CSS and script; placeholders such as ``{title}`` are substituted
with ``str.replace`` so the CSS and JavaScript braces need no escaping.
"""

import html
import json

from .models import RoomStatus
from .status import status_text

# CSS variables shared by both pages for easy theme customisation.
CSS_VARS = """
:root {
  --bg: #f4f6fb;
  --fg: #111827;
  --panel: #ffffff;
  --muted: #6b7280;
  --border: rgba(0,0,0,0.10);
  --free: #22c55e;
  --soon: #f59e0b;
  --occupied: #ef4444;
  --office: #9ca3af;
  --accent: #2563eb;
}
:root.dark {
  --bg: #0b0d12;
  --fg: #e9eefc;
  --panel: #141926;
  --muted: #9aa3b5;
  --border: rgba(255,255,255,0.10);
  --office: #4b5563;
}
"""

DASHBOARD_HTML = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{title}</title>
  <style>
    {css_vars}
    body { margin: 0; font-family: system-ui, -apple-system, Segoe UI, Roboto, Ubuntu, Arial; background: var(--bg); color: var(--fg); }
    header { display: flex; gap: 14px; align-items: center; padding: 16px 22px; border-bottom: 1px solid var(--border); background: var(--panel); }
    h1 { margin: 0; font-size: 22px; }
    .meta { color: var(--muted); font-size: 13px; }
    .actions { margin-left: auto; display: flex; gap: 10px; align-items: center; }
    button, input[type=date] { background: var(--panel); color: var(--fg); border: 1px solid var(--border); border-radius: 10px; padding: 8px 12px; font-size: 14px; cursor: pointer; }
    button.primary { background: var(--accent); color: #fff; border-color: var(--accent); }
    main { padding: 18px 22px 28px; }
    .legend { display: flex; gap: 16px; font-size: 13px; margin-bottom: 14px; }
    .dot { display: inline-block; width: 11px; height: 11px; border-radius: 50%; margin-right: 6px; vertical-align: middle; }
    .tabs { display: flex; gap: 8px; margin-bottom: 14px; }
    .tabs button.active { background: var(--accent); color: #fff; border-color: var(--accent); }
    .map { width: 100%; max-height: 70vh; background: var(--panel); border: 1px solid var(--border); border-radius: 14px; }
    .map .overlay { opacity: 0.75; cursor: pointer; stroke: rgba(0,0,0,0.35); stroke-width: 2; }
    .map .overlay:hover { opacity: 0.95; }
    .map .overlay.office { cursor: default; }
    .map text { font-size: 16px; font-weight: 650; fill: #fff; pointer-events: none; }
    .grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(220px, 1fr)); gap: 12px; margin-top: 18px; }
    .card { border-radius: 14px; padding: 14px; color: #fff; cursor: pointer; border: none; text-align: left; }
    .card.office { cursor: default; }
    .card .name { font-size: 17px; font-weight: 700; }
    .card .sub { font-size: 13px; opacity: 0.92; margin-top: 6px; }
    .free { background: var(--free); fill: var(--free); }
    .soon { background: var(--soon); fill: var(--soon); }
    .occupied { background: var(--occupied); fill: var(--occupied); }
    .office { background: var(--office); fill: var(--office); }
    .errorbar { margin: 14px 22px 0; padding: 10px 12px; border-radius: 12px; border: 1px solid var(--border); background: rgba(255,165,0,0.12); font-size: 13px; }
    .fatal { text-align: center; padding: 80px 20px; }
    .modal { position: fixed; inset: 0; background: rgba(0,0,0,0.5); display: none; align-items: center; justify-content: center; }
    .modal.open { display: flex; }
    .modal .box { background: var(--panel); color: var(--fg); border-radius: 16px; padding: 20px; width: min(560px, 92vw); max-height: 80vh; overflow: auto; }
    .reservation { border: 1px solid var(--border); border-radius: 12px; padding: 10px 12px; margin-top: 10px; }
    .reservation.now { border-color: var(--occupied); }
    .muted { color: var(--muted); font-size: 13px; }
    footer { text-align: center; color: var(--muted); font-size: 12px; padding: 20px; }
  </style>
</head>
<body>
  <header>
    <h1>{title}</h1>
    <div class="meta" id="meta">Loading…</div>
    <div class="actions">
      <input type="date" id="date" />
      <button id="refresh">Refresh</button>
      <button id="theme" aria-label="Toggle theme">◐</button>
    </div>
  </header>
  <div id="error" class="errorbar" style="display:none;"></div>
  <main id="main">
    <div class="legend">
      <span><span class="dot free"></span>Available</span>
      <span><span class="dot soon"></span>Soon occupied</span>
      <span><span class="dot occupied"></span>Occupied</span>
      <span><span class="dot office"></span>Office</span>
    </div>
    <div class="tabs" id="tabs"></div>
    <svg class="map" id="map" preserveAspectRatio="xMidYMid meet"></svg>
    <div class="grid" id="grid"></div>
  </main>
  <div id="fatal" class="fatal" style="display:none;">
    <p id="fatal-msg">Failed to fetch room data</p>
    <button class="primary" id="retry">Try again</button>
  </div>
  <div class="modal" id="modal"><div class="box" id="modal-box"></div></div>
  <footer>{title} · Real-time room availability</footer>
<script>
const STATUS_REFRESH_MS = {status_refresh_seconds} * 1000;
const FLOOR_PLANS = {floor_plans};
const STATUS_TEXT = {status_text};
const SVG_NS = "http://www.w3.org/2000/svg";
let snapshot = null;
let regions = {};
let canvases = {};
let selectedFloor = null;

function fmtTime(iso) {
  return new Date(iso).toLocaleTimeString([], {hour: "2-digit", minute: "2-digit", hour12: false});
}
function statusClass(room) { return room.type === "office" ? "office" : room.status; }
function detailLine(room) {
  if (room.type === "office") return "Office";
  if (room.status === "occupied" && room.currentReservation) return `Until ${fmtTime(room.currentReservation.end_date)}`;
  if (room.status === "soon" && room.nextReservation) return `From ${fmtTime(room.nextReservation.start_date)} · ${room.nextReservation.title}`;
  return STATUS_TEXT[room.status];
}
function svgEl(name, attrs) {
  const el = document.createElementNS(SVG_NS, name);
  Object.entries(attrs).forEach(([k, v]) => el.setAttribute(k, v));
  return el;
}
function renderTabs() {
  const tabs = document.getElementById("tabs");
  tabs.innerHTML = "";
  snapshot.floors.forEach(f => {
    const b = document.createElement("button");
    b.textContent = `Floor ${f.floor}`;
    if (f.floor === selectedFloor) b.className = "active";
    b.onclick = () => { selectedFloor = f.floor; render(); };
    tabs.appendChild(b);
  });
}
function renderMap(floor) {
  const svg = document.getElementById("map");
  const canvas = canvases[floor.floor] || canvases[0] || {w: 1137, h: 627};
  svg.setAttribute("viewBox", `0 0 ${canvas.w} ${canvas.h}`);
  svg.innerHTML = "";
  if (FLOOR_PLANS) {
    svg.appendChild(svgEl("image", {href: `/floorplans/Z${floor.floor}-Floor.svg`, x: 0, y: 0, width: canvas.w, height: canvas.h}));
  }
  floor.rooms.forEach(room => {
    const region = regions[room.name];
    if (!region || region.floor !== floor.floor) return;
    const pts = region.points.map(p => `${p.x},${p.y}`).join(" ");
    const poly = svgEl("polygon", {points: pts, class: `overlay ${statusClass(room)}`});
    const title = svgEl("title", {});
    title.textContent = `${room.name} · ${room.type === "office" ? "Office" : STATUS_TEXT[room.status]}`;
    poly.appendChild(title);
    poly.onclick = () => openRoom(room);
    svg.appendChild(poly);
    const label = svgEl("text", {x: region.x + region.w / 2, y: region.y + region.h / 2, "text-anchor": "middle", "dominant-baseline": "middle"});
    label.textContent = room.name;
    svg.appendChild(label);
  });
}
function renderCards(floor) {
  const grid = document.getElementById("grid");
  grid.innerHTML = "";
  floor.rooms.forEach(room => {
    const card = document.createElement("button");
    card.className = `card ${statusClass(room)}`;
    const name = document.createElement("div");
    name.className = "name";
    name.textContent = room.name;
    const sub = document.createElement("div");
    sub.className = "sub";
    sub.textContent = detailLine(room);
    card.appendChild(name);
    card.appendChild(sub);
    card.onclick = () => openRoom(room);
    grid.appendChild(card);
  });
}
function render() {
  if (!snapshot) return;
  if (selectedFloor === null && snapshot.floors.length) selectedFloor = snapshot.floors[0].floor;
  renderTabs();
  const floor = snapshot.floors.find(f => f.floor === selectedFloor);
  if (!floor) return;
  renderMap(floor);
  renderCards(floor);
}
function openRoom(room) {
  if (room.type === "office") return;
  const box = document.getElementById("modal-box");
  box.innerHTML = "";
  const h = document.createElement("h2");
  h.textContent = room.name;
  const sub = document.createElement("div");
  sub.className = "muted";
  sub.textContent = `Room · Floor ${room.floor} · ${STATUS_TEXT[room.status]}`;
  box.appendChild(h);
  box.appendChild(sub);
  if (!room.reservations.length) {
    const p = document.createElement("p");
    p.textContent = "No reservations for this day.";
    box.appendChild(p);
  }
  room.reservations.forEach(r => {
    const div = document.createElement("div");
    div.className = "reservation" + (room.currentReservation && room.currentReservation.id === r.id ? " now" : "");
    const t = document.createElement("strong");
    t.textContent = `${fmtTime(r.start_date)} – ${fmtTime(r.end_date)} · ${r.title}`;
    const u = document.createElement("div");
    u.className = "muted";
    u.textContent = [r.second_title, r.unit_name].filter(Boolean).join(" · ");
    div.appendChild(t);
    div.appendChild(u);
    box.appendChild(div);
  });
  document.getElementById("modal").className = "modal open";
}
function closeModal() { document.getElementById("modal").className = "modal"; }
function showFatal(msg) {
  document.getElementById("main").style.display = "none";
  document.getElementById("fatal").style.display = "block";
  document.getElementById("fatal-msg").textContent = msg;
}
function hideFatal() {
  document.getElementById("main").style.display = "block";
  document.getElementById("fatal").style.display = "none";
}
function floorsUrl() {
  const d = document.getElementById("date").value;
  return d ? `/api/floors?date=${d}` : "/api/floors";
}
function applySnapshot(data) {
  snapshot = data;
  const err = document.getElementById("error");
  const updated = data.lastUpdate ? fmtTime(data.lastUpdate) : "never";
  document.getElementById("meta").textContent = `${data.date || ""} · updated ${updated}`;
  if (data.lastError) {
    err.style.display = "block";
    err.textContent = `Warning: ${data.lastError}`;
  } else {
    err.style.display = "none";
  }
  hideFatal();
  render();
}
async function load(url, options) {
  try {
    const r = await fetch(url, Object.assign({cache: "no-store"}, options || {}));
    const data = await r.json();
    if (!r.ok) {
      if (!snapshot) showFatal(data.error || "Failed to fetch room data");
      return;
    }
    applySnapshot(data);
  } catch (e) {
    if (!snapshot) showFatal(`Failed to fetch room data: ${e}`);
  }
}
async function loadRegions() {
  const r = await fetch("/api/regions", {cache: "no-store"});
  const data = await r.json();
  regions = data.regions;
  data.canvases.forEach(c => { canvases[c.floor] = c; });
}
function applyTheme(dark) {
  document.documentElement.classList.toggle("dark", dark);
  localStorage.setItem("theme", dark ? "dark" : "light");
}
document.getElementById("theme").onclick = () => applyTheme(!document.documentElement.classList.contains("dark"));
document.getElementById("refresh").onclick = () => {
  document.getElementById("date").value ? load(floorsUrl()) : load("/api/refresh", {method: "POST"});
};
document.getElementById("retry").onclick = () => load("/api/refresh", {method: "POST"});
document.getElementById("date").onchange = () => load(floorsUrl());
document.getElementById("modal").onclick = (e) => { if (e.target.id === "modal") closeModal(); };
window.addEventListener("keydown", (e) => { if (e.key === "Escape") closeModal(); });
applyTheme(localStorage.getItem("theme") === "dark");
loadRegions().then(() => load(floorsUrl()));
setInterval(() => load(floorsUrl()), STATUS_REFRESH_MS);
</script>
</body>
</html>
"""

EDITOR_HTML = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>Map Editor · {title}</title>
  <style>
    {css_vars}
    body { margin: 0; display: flex; height: 100vh; font-family: system-ui, -apple-system, Segoe UI, Roboto, Arial; background: #111827; color: #e5e7eb; }
    aside { width: 260px; padding: 16px; background: #1f2937; overflow: auto; }
    aside h1 { font-size: 18px; margin: 0 0 4px; }
    aside ul { list-style: none; padding: 0; }
    aside li button { width: 100%; text-align: left; margin: 3px 0; padding: 7px 10px; border-radius: 6px; border: none; background: #374151; color: #d1d5db; cursor: pointer; }
    aside li button.mapped { background: #4b5563; color: #fff; }
    aside li button.placing { background: #4f46e5; color: #fff; }
    select, .btn { width: 100%; padding: 7px; border-radius: 6px; background: #374151; color: #fff; border: none; margin-top: 6px; }
    .help { font-size: 12px; color: #9ca3af; }
    pre { font-size: 11px; max-height: 240px; overflow: auto; background: #111827; padding: 8px; }
    main { flex: 1; position: relative; }
    svg { width: 100%; height: 100%; display: block; background: #fff; }
    polygon { fill: rgba(99,102,241,0.25); stroke: rgba(99,102,241,0.9); stroke-width: 2; }
    circle.vertex { fill: #fff; stroke: #4f46e5; stroke-width: 2; cursor: grab; }
    circle.lens-bg { fill: #fff; }
    circle.lens-ring { fill: none; stroke: #4f46e5; stroke-width: 3; pointer-events: none; }
    .banner { position: absolute; top: 10px; left: 50%; transform: translateX(-50%); background: #4f46e5; padding: 6px 12px; border-radius: 8px; }
  </style>
</head>
<body>
  <aside>
    <h1>Map Editor</h1>
    <div class="help">Internal tool · /dev/map-editor</div>
    <label>Floor</label>
    <select id="floor"></select>
    <ul id="rooms"></ul>
    <div class="help">
      <p>· Click a room, then click the map to place a rectangle</p>
      <p>· Drag vertices to reshape</p>
      <p>· Double-click an edge to add a point</p>
      <p>· Right-click a vertex to delete it</p>
      <p>· Escape cancels placement</p>
      <p>· Hold Shift to magnify</p>
    </div>
    <div id="shapes"></div>
    <button class="btn" id="copy">Copy JSON</button>
    <button class="btn" id="save">Save to registry file</button>
    <details><summary>Preview JSON</summary><pre id="json"></pre></details>
  </aside>
  <main>
    <div class="banner" id="banner" style="display:none;"></div>
    <svg id="canvas" preserveAspectRatio="xMidYMid meet"></svg>
  </main>
<script>
const ROOMS = {rooms};
const FLOORS = {floors};
const FLOOR_PLANS = {floor_plans};
const SVG_NS = "http://www.w3.org/2000/svg";
const svg = document.getElementById("canvas");
let state = null;
let pending = Promise.resolve();

function send(event) {
  pending = pending.then(async () => {
    const r = await fetch("/dev/map-editor/events", {method: "POST", headers: {"Content-Type": "application/json"}, body: JSON.stringify(event)});
    if (r.ok) { state = await r.json(); draw(); }
  });
  return pending;
}
function pointerEvent(kind, e, extra) {
  return Object.assign({kind: kind, client_x: e.clientX, client_y: e.clientY}, extra || {});
}
function reportViewport() {
  const r = svg.getBoundingClientRect();
  return send({kind: "viewport", viewport: {left: r.left, top: r.top, width: r.width, height: r.height}});
}
function el(name, attrs) {
  const node = document.createElementNS(SVG_NS, name);
  Object.entries(attrs).forEach(([k, v]) => node.setAttribute(k, v));
  return node;
}
function draw() {
  const {w, h} = state.canvas;
  svg.setAttribute("viewBox", `0 0 ${w} ${h}`);
  svg.style.cursor = state.placingRoom ? "crosshair" : (state.dragging ? "grabbing" : "default");
  svg.innerHTML = "";
  const plan = el("g", {});
  if (FLOOR_PLANS) plan.appendChild(el("image", {href: `/floorplans/Z${state.floor}-Floor.svg`, x: 0, y: 0, width: w, height: h, preserveAspectRatio: "none"}));
  svg.appendChild(plan);
  const onFloor = state.regions.filter(r => r.floor === state.floor);
  onFloor.forEach(region => {
    const poly = el("polygon", {points: region.points.map(p => `${p.x},${p.y}`).join(" ")});
    poly.addEventListener("dblclick", (e) => { e.stopPropagation(); send(pointerEvent("double_click", e, {region_index: region.index})); });
    plan.appendChild(poly);
  });
  onFloor.forEach(region => {
    region.points.forEach((p, vi) => {
      const c = el("circle", {cx: p.x, cy: p.y, r: 6, class: "vertex"});
      c.addEventListener("mousedown", (e) => { e.stopPropagation(); e.preventDefault(); send({kind: "vertex_down", region_index: region.index, vertex_index: vi}); });
      c.addEventListener("contextmenu", (e) => { e.preventDefault(); e.stopPropagation(); send({kind: "vertex_context_menu", region_index: region.index, vertex_index: vi}); });
      svg.appendChild(c);
    });
  });
  if (state.magnifier) drawMagnifier(plan);
  const banner = document.getElementById("banner");
  banner.style.display = state.placingRoom ? "block" : "none";
  banner.textContent = `Click on the map to place ${state.placingRoom}`;
  drawSidebar();
}
function drawMagnifier(plan) {
  const m = state.magnifier;
  const rect = svg.getBoundingClientRect();
  const scale = Math.min(rect.width / state.canvas.w, rect.height / state.canvas.h) || 1;
  const r = m.radius / scale;
  const defs = el("defs", {});
  const clip = el("clipPath", {id: "lens"});
  clip.appendChild(el("circle", {cx: m.x, cy: m.y, r: r}));
  defs.appendChild(clip);
  svg.appendChild(defs);
  const lens = el("g", {"clip-path": "url(#lens)", "pointer-events": "none"});
  lens.appendChild(el("circle", {cx: m.x, cy: m.y, r: r, class: "lens-bg"}));
  const zoomed = plan.cloneNode(true);
  zoomed.setAttribute("transform", `translate(${m.x} ${m.y}) scale(${m.zoom}) translate(${-m.x} ${-m.y})`);
  lens.appendChild(zoomed);
  svg.appendChild(lens);
  svg.appendChild(el("circle", {cx: m.x, cy: m.y, r: r, class: "lens-ring"}));
}
function drawSidebar() {
  const list = document.getElementById("rooms");
  list.innerHTML = "";
  (ROOMS[state.floor] || []).forEach(room => {
    const li = document.createElement("li");
    const b = document.createElement("button");
    const mapped = state.regions.some(r => r.roomName === room && r.floor === state.floor);
    b.className = state.placingRoom === room ? "placing" : (mapped ? "mapped" : "");
    b.textContent = (mapped ? "✓ " : "") + room;
    b.onclick = () => send({kind: "begin_placement", room: room});
    li.appendChild(b);
    list.appendChild(li);
  });
  const shapes = document.getElementById("shapes");
  shapes.innerHTML = "";
  state.regions.filter(r => r.floor === state.floor).forEach(region => {
    const b = document.createElement("button");
    b.className = "btn";
    b.textContent = `Delete ${region.roomName} (${region.points.length} pts)`;
    b.onclick = async () => {
      const r = await fetch(`/dev/map-editor/regions/${region.index}`, {method: "DELETE"});
      if (r.ok) { state = await r.json(); draw(); }
    };
    shapes.appendChild(b);
  });
  fetch("/dev/map-editor/export").then(r => r.text()).then(t => { document.getElementById("json").textContent = t; });
}
const floorSel = document.getElementById("floor");
FLOORS.forEach(f => { const o = document.createElement("option"); o.value = f; o.textContent = `Floor ${f}`; floorSel.appendChild(o); });
floorSel.onchange = () => send({kind: "select_floor", floor: Number(floorSel.value)}).then(reportViewport);
svg.addEventListener("click", (e) => { if (state && state.placingRoom) send(pointerEvent("click", e)); });
svg.addEventListener("mousemove", (e) => { if (state && (state.dragging || state.magnifier || e.shiftKey)) send(pointerEvent("move", e)); });
svg.addEventListener("mouseup", () => send({kind: "release"}));
svg.addEventListener("mouseleave", () => send({kind: "release"}));
window.addEventListener("keydown", (e) => { if (!e.repeat) send({kind: "key", key: e.key}); });
window.addEventListener("keyup", (e) => { send({kind: "key_up", key: e.key}); });
window.addEventListener("resize", reportViewport);
document.getElementById("copy").onclick = async () => {
  const t = await (await fetch("/dev/map-editor/export")).text();
  await navigator.clipboard.writeText(t);
};
document.getElementById("save").onclick = async () => {
  const r = await fetch("/dev/map-editor/save", {method: "POST"});
  const data = await r.json();
  alert(r.ok ? `Saved ${data.count} regions to ${data.path}` : data.detail);
};
fetch("/dev/map-editor/state").then(r => r.json()).then(s => { state = s; floorSel.value = s.floor; draw(); return reportViewport(); });
</script>
</body>
</html>
"""


def render_dashboard(title: str, status_refresh_seconds: int, floor_plans: bool) -> str:
    """Return the dashboard document."""
    return (
        DASHBOARD_HTML.replace("{css_vars}", CSS_VARS)
        .replace("{title}", html.escape(title))
        .replace("{status_refresh_seconds}", str(int(status_refresh_seconds)))
        .replace("{floor_plans}", json.dumps(floor_plans))
        .replace("{status_text}", json.dumps({s.value: status_text(s) for s in RoomStatus}))
    )


def render_editor(title: str, rooms_by_floor: dict, floors: list, floor_plans: bool) -> str:
    """Return the map editor document."""
    return (
        EDITOR_HTML.replace("{css_vars}", CSS_VARS)
        .replace("{title}", html.escape(title))
        .replace("{rooms}", json.dumps(rooms_by_floor))
        .replace("{floors}", json.dumps(floors))
        .replace("{floor_plans}", json.dumps(floor_plans))
    )
