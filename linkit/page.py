"""Self-contained HTML page that draws a history and its partial linearizations."""

from __future__ import annotations

import os
from typing import TextIO, Union

from linkit.checker import LinearizationInfo
from linkit.model import Model
from linkit.visualization import compute_visualization_data, visualization_json

_PAGE_HEAD = r"""
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>linkit</title>
<style>
body { font: 15px Helvetica, Arial, sans-serif; margin: 0; }
header {
  position: sticky; top: 0; z-index: 2;
  display: flex; gap: 18px; align-items: center;
  background: #fafafa; border-bottom: 1px solid #ddd; padding: 6px 10px;
}
.swatch { display: inline-block; width: 10px; height: 10px; margin-right: 4px; }
#view { padding: 10px; overflow-x: auto; }
.op rect { fill: #7cc6e8; stroke: #556; stroke-width: 1; }
.op text { font: 13px monospace; }
.op.picked rect { stroke-width: 4; }
.faded { opacity: 0.2; }
.lin { pointer-events: none; }
.lp { stroke: rgba(0, 0, 0, 0.55); }
.lp-bad { stroke: rgba(220, 0, 0, 0.6); }
.lp-mark { stroke-width: 5; }
.lp-link { stroke-width: 2; }
#tip {
  position: absolute; display: none; max-width: 420px;
  background: #fff; border: 1px solid #bbb; border-radius: 4px;
  padding: 6px; font-size: 13px; pointer-events: none;
}
#jump { color: #1a5d75; cursor: pointer; }
#jump.off { display: none; }
</style>
</head>
<body>
<header>
  <span>rows: clients &middot; left to right: time</span>
  <span><span class="swatch" style="background: rgba(0, 0, 0, 0.55)"></span>linearization point</span>
  <span><span class="swatch" style="background: rgba(220, 0, 0, 0.6)"></span>failed next step</span>
  <span id="jump">jump to first failure</span>
</header>
<div id="view"></div>
<div id="tip"></div>
<script>
'use strict'

const NS = 'http://www.w3.org/2000/svg'
const ROW = 30, GAP_Y = 14, MARGIN = 10, LABEL = 24
const MIN_STEP = 20, LP_STEP = 18, BLEED = 5, TEXT_PAD = 8

function el(tag, attrs, parent) {
  const node = document.createElementNS(NS, tag)
  for (const [k, v] of Object.entries(attrs || {})) node.setAttribute(k, v)
  if (parent) parent.appendChild(node)
  return node
}

function esc(s) {
  return String(s).replace(/&/g, '&amp;').replace(/</g, '&lt;').replace(/>/g, '&gt;')
}

function textWidth(s) {
  const probe = el('svg', {style: 'position: absolute; visibility: hidden'}, document.body)
  const t = el('text', {style: 'font: 13px monospace'}, probe)
  t.textContent = s
  const w = t.getComputedTextLength()
  probe.remove()
  return w
}

function render(partitions) {
  const view = document.getElementById('view')
  const tip = document.getElementById('tip')
  const jump = document.getElementById('jump')

  const ops = []
  partitions.forEach((p, pi) => p.History.forEach((op, i) => {
    ops.push({
      partition: pi, index: i, client: op.ClientId,
      start: op.Start, end: op.End, shownEnd: op.End,
      text: op.Description, width: textWidth(op.Description) + 2 * TEXT_PAD,
    })
  }))
  if (ops.length === 0) {
    view.textContent = 'Empty history.'
    jump.classList.add('off')
    return
  }

  // An end that coincides with some start moves halfway to the next time.
  const starts = new Set(ops.map(o => o.start))
  const collect = () => [...new Set(ops.flatMap(o => [o.start, o.end]))].sort((a, b) => a - b)
  let times = collect()
  const after = new Map(times.slice(0, -1).map((t, i) => [t, times[i + 1]]))
  ops.forEach(o => {
    if (starts.has(o.end) && after.has(o.end)) o.end = (o.end + after.get(o.end)) / 2
  })
  times = collect()

  const byKey = new Map(ops.map(o => [o.partition + ':' + o.index, o]))
  const lins = []
  partitions.forEach((p, pi) => p.PartialLinearizations.forEach(steps => {
    const order = steps.map(s => byKey.get(pi + ':' + s.Index))
    const done = new Set(order)
    const rest = ops.filter(o => o.partition === pi && !done.has(o))
    const earliestEnd = Math.min(Infinity, ...rest.map(o => o.end))
    const failed = rest.filter(o => o.start < earliestEnd)
    lins.push({partition: pi, steps, order, failed, xs: []})
  }))

  // Greedy scan: give every time an x position so that text and
  // linearization points fit inside their boxes.
  const x = new Map([[times[0], 0]])
  const byEnd = [...ops].sort((a, b) => a.end - b.end)
  const extend = (lin, upto) => {
    while (lin.xs.length <= upto) {
      const here = x.get(lin.order[lin.xs.length].start)
      const last = lin.xs[lin.xs.length - 1]
      lin.xs.push(lin.xs.length ? Math.max(here, last + LP_STEP) : here)
    }
  }
  let k = 0
  for (let i = 1; i < times.length; i++) {
    let pos = x.get(times[i - 1]) + MIN_STEP
    for (; k < byEnd.length && byEnd[k].end <= times[i]; k++) {
      const o = byEnd[k]
      pos = Math.max(pos, x.get(o.start) + o.width)
      for (const lin of lins) {
        const at = lin.order.indexOf(o)
        if (at >= 0) {
          extend(lin, at)
          pos = Math.max(pos, lin.xs[at])
        }
        if (lin.failed.includes(o)) {
          extend(lin, lin.order.length - 1)
          const last = lin.xs.length ? lin.xs[lin.xs.length - 1] + LP_STEP : x.get(o.start)
          pos = Math.max(pos, last)
        }
      }
    }
    x.set(times[i], pos)
  }

  const nClients = Math.max(0, ...ops.map(o => o.client)) + 1
  const rowY = c => MARGIN + c * (ROW + GAP_Y)
  const X = t => MARGIN + LABEL + x.get(t)
  const width = 2 * MARGIN + LABEL + x.get(times[times.length - 1])
  const height = 2 * MARGIN + nClients * ROW + (nClients - 1) * GAP_Y
  const svg = el('svg', {width, height}, view)
  el('rect', {width, height, fill: 'transparent'}, svg).addEventListener('click', () => unpick())
  for (let c = 0; c < nClients; c++) {
    el('text', {x: LABEL / 2, y: rowY(c) + ROW / 2 + 4, 'text-anchor': 'middle'}, svg).textContent = c
  }
  el('line', {x1: MARGIN + LABEL, x2: MARGIN + LABEL, y1: MARGIN, y2: height - MARGIN, stroke: '#ccc'}, svg)

  const layers = partitions.map(() => el('g', {}, svg))
  ops.forEach(o => {
    o.node = el('g', {class: 'op'}, layers[o.partition])
    const w = X(o.end) - X(o.start)
    el('rect', {x: X(o.start), y: rowY(o.client), width: w, height: ROW, rx: 4, ry: 4}, o.node)
    el('text', {x: X(o.start) + w / 2, y: rowY(o.client) + ROW / 2 + 4, 'text-anchor': 'middle'}, o.node)
      .textContent = o.text
  })

  const errors = []
  lins.forEach(lin => {
    lin.node = el('g', {class: 'lin'}, svg)
    let prev = null
    const mark = (o, cls) => {
      const here = X(o.start)
      const px = prev ? Math.max(here, prev.x + LP_STEP) : here
      const y = rowY(o.client) - BLEED
      if (prev) {
        el('line', {
          x1: prev.x, x2: px,
          y1: prev.o.client >= o.client ? prev.y : prev.y + ROW + 2 * BLEED,
          y2: prev.o.client <= o.client ? y : y + ROW + 2 * BLEED,
          class: cls + ' lp-link',
        }, lin.node)
      }
      const node = el('line', {x1: px, x2: px, y1: y, y2: y + ROW + 2 * BLEED, class: cls + ' lp-mark'}, lin.node)
      return {o, x: px, y, node}
    }
    lin.order.forEach(o => { prev = mark(o, 'lp') })
    const base = prev
    lin.failed.forEach(o => {
      prev = base
      const m = mark(o, 'lp-bad')
      errors.push({x: m.x, lin, node: m.node})
    })
  })
  errors.sort((a, b) => a.x - b.x)

  const linsOf = pi => lins.filter(l => l.partition === pi)
  const failBest = new Map()
  lins.forEach(lin => lin.failed.forEach(o => {
    const best = failBest.get(o)
    if (!best || best.order.length < lin.order.length) failBest.set(o, lin)
  }))
  const linFor = o => {
    const largest = partitions[o.partition].Largest
    if (Object.prototype.hasOwnProperty.call(largest, o.index)) return linsOf(o.partition)[largest[o.index]]
    return failBest.get(o) || null
  }

  let picked = null

  function show(focus) {
    layers.forEach((g, i) => g.classList.toggle('faded', focus !== null && i !== focus.partition))
    const visible = new Set(
      focus === null ? partitions.map((p, pi) => linsOf(pi)[0]).filter(Boolean) : [linFor(focus)].filter(Boolean))
    lins.forEach(l => l.node.classList.toggle('faded', !visible.has(l)))
    const first = errors.find(e => visible.has(e.lin))
    jump.classList.toggle('off', !first)
    jump.onclick = first ? () => {
      first.node.scrollIntoView({behavior: 'smooth', block: 'center', inline: 'center'})
      const order = first.lin.order
      if (!picked && order.length) pick(order[order.length - 1])
    } : null
  }

  function pick(o) {
    if (picked) picked.node.classList.remove('picked')
    picked = o
    o.node.classList.add('picked')
    show(o)
  }

  function unpick() {
    if (!picked) return
    picked.node.classList.remove('picked')
    picked = null
    show(null)
  }

  function describe(o) {
    if (picked && picked.partition !== o.partition) return 'Not in the selected partition.'
    const lin = linFor(picked || o)
    if (!lin) {
      return picked ? 'The selected operation is in no partial linearization.' : 'In no partial linearization.'
    }
    const when = '<br><br>Call: ' + o.start + '<br><br>Return: ' + o.shownEnd
    const at = lin.order.indexOf(o)
    if (at >= 0) {
      const before = at > 0 ? '<b>Previous state:</b><br>' + esc(lin.steps[at - 1].StateDescription) + '<br><br>' : ''
      return before + '<b>New state:</b><br>' + esc(lin.steps[at].StateDescription) + when
    }
    if (lin.failed.includes(o)) {
      const last = lin.steps.length ? lin.steps[lin.steps.length - 1].StateDescription : ''
      return '<b>Previous state:</b><br>' + esc(last) + '<br><br><b>New state:</b><br>(not a legal step)' + when
    }
    return 'Not in the partial linearization of the selected operation.'
  }

  ops.forEach(o => {
    o.node.addEventListener('mouseenter', () => {
      if (!picked) show(o)
      tip.style.display = 'block'
    })
    o.node.addEventListener('mousemove', ev => {
      tip.innerHTML = describe(o)
      tip.style.left = (ev.pageX + 20) + 'px'
      tip.style.top = (ev.pageY + 20) + 'px'
    })
    o.node.addEventListener('mouseleave', () => {
      if (!picked) show(null)
      tip.style.display = 'none'
    })
    o.node.addEventListener('click', () => {
      if (picked === o) unpick()
      else pick(o)
    })
  })

  show(null)
}

const data = """

_PAGE_TAIL = r"""

render(data)
</script>
</body>
</html>
"""


def render_page(json_data: str) -> str:
    """Return the complete HTML page with ``json_data`` embedded as its data."""
    return _PAGE_HEAD + json_data + _PAGE_TAIL


def visualize(model: Model, info: LinearizationInfo, output: TextIO) -> None:
    """Write an HTML visualization of ``info`` to the text stream ``output``."""
    data = compute_visualization_data(model, info)
    output.write(render_page(visualization_json(data)))


def visualize_path(
    model: Model, info: LinearizationInfo, path: Union[str, "os.PathLike[str]"]
) -> None:
    """Write an HTML visualization of ``info`` to the file at ``path``."""
    with open(path, "w", encoding="utf-8") as handle:
        visualize(model, info, handle)