HTML = """<!doctype html><meta charset="utf-8">
<title>serverwatch - Server Status</title>
<style>
body{font-family:sans-serif;margin:24px}
.grid{display:grid;grid-template-columns:repeat(auto-fill,minmax(260px,1fr));gap:12px}
.card{border:1px solid #ddd;border-radius:10px;padding:12px;display:flex;justify-content:space-between;align-items:center}
.badge{padding:2px 8px;border-radius:999px;font-size:12px}
.up{background:#e6ffec}.down{background:#ffebe6}.other{background:#eee}
.flash{animation:flash 2s ease-out}
@keyframes flash{from{background:#fff3cd}to{background:transparent}}
.meta{color:#666;font-size:12px}
</style>
<h1>Server Status</h1>
<p class="meta">Live view; the page updates when the upstream status changes.</p>
<div id="ts" class="meta"></div><div id="conn" class="meta"></div><div id="grid" class="grid"></div>
<script>
function cls(status){
  const s=(status||'').toLowerCase();
  if (s==='up'||s==='online') return 'up';
  if (s==='down'||s==='offline') return 'down';
  return 'other';
}
function render(list, old){
  const prev={}; for (const x of (old||[])) prev[x.name]=x.status;
  const grid=document.getElementById('grid'); grid.innerHTML='';
  for (const x of list){
    const div=document.createElement('div');
    div.className='card'+(old && prev[x.name]!==x.status?' flash':'');
    // scraped text: never parse it as HTML
    const name=document.createElement('strong'); name.textContent=x.name;
    const badge=document.createElement('span');
    badge.className='badge '+cls(x.status); badge.textContent=x.status||'-';
    div.append(name, badge);
    grid.appendChild(div);
  }
  if (!list.length) grid.innerHTML='<div class="meta">No status recorded yet.</div>';
}
async function load(){
  const r=await fetch('/api/initial-status',{cache:'no-store'});
  render(await r.json());
  const s=await (await fetch('/api/status',{cache:'no-store'})).json();
  document.getElementById('ts').textContent='Last change: '+(s.lastPingTime?new Date(s.lastPingTime).toLocaleString():'-');
}
function listen(){
  const es=new EventSource('/events');
  es.onopen=()=>{document.getElementById('conn').textContent='Live';};
  es.onerror=()=>{document.getElementById('conn').textContent='Reconnecting…';};
  es.onmessage=(m)=>{
    const ev=JSON.parse(m.data);
    if (ev.type!=='STATUS_CHANGE') return;
    render(ev.payload, ev.oldPayload);
    document.getElementById('ts').textContent='Last change: '+new Date().toLocaleString();
  };
}
load(); listen();
</script>
"""
