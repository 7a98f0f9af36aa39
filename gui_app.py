# gui_app.py - Hydrogen Orbital Point-Cloud Viewer
"""
PySide6/VTK viewer for sampled hydrogen-like orbitals.

- Two point actors: positive lobe and negative lobe
- Sampling runs on a QThread; a finished SampleResult replaces both
  point sets in one render call
- Radial histogram of the cloud against the exact r^2 |R|^2 (pyqtgraph)
"""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import replace
from typing import Optional

import numpy as np
from PySide6.QtCore import Qt, QThread, Signal
from PySide6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QSplitter, QLabel, QSpinBox, QDoubleSpinBox, QPushButton,
    QFormLayout, QGroupBox, QCheckBox, QMessageBox,
)
import pyqtgraph as pg

from vtkmodules.qt.QVTKRenderWindowInteractor import QVTKRenderWindowInteractor
from vtkmodules.vtkRenderingCore import vtkRenderer, vtkActor, vtkPolyDataMapper
from vtkmodules.vtkCommonCore import vtkPoints
from vtkmodules.vtkCommonDataModel import vtkPolyData
from vtkmodules.vtkFiltersGeneral import vtkVertexGlyphFilter
from vtkmodules.util import numpy_support as vtk_np
from vtkmodules.vtkInteractionStyle import vtkInteractorStyleTrackballCamera
from vtkmodules.vtkRenderingOpenGL2 import *  # noqa: F401,F403

from orbital_physics import OrbitalError, QuantumState
from orbital_rendering import (
    RenderConfig, analytic_radial_curve, clamp_quantum_numbers, lobe_fractions, radial_histogram,
)
from orbital_sampler import SampleResult, SamplerConfig, sample

logger = logging.getLogger(__name__)


def points_to_polydata(xyz: np.ndarray) -> vtkPolyData:
    """(N,3) array -> vtkPolyData with one vertex cell per point."""
    poly = vtkPolyData()
    if xyz is None or xyz.size == 0:
        poly.SetPoints(vtkPoints())
        return poly

    pts = vtkPoints()
    pts.SetData(vtk_np.numpy_to_vtk(np.ascontiguousarray(xyz, dtype=np.float32), deep=True))
    poly.SetPoints(pts)

    glyph = vtkVertexGlyphFilter()
    glyph.SetInputData(poly)
    glyph.Update()
    out = vtkPolyData()
    out.ShallowCopy(glyph.GetOutput())
    return out


# -----------------------------
# Background sampling
# -----------------------------

class SamplingWorker(QThread):
    result_ready = Signal(object)
    error_occurred = Signal(str)

    def __init__(self, state: QuantumState, num_points: int, r_max: float,
                 config: SamplerConfig, seed: Optional[int]) -> None:
        super().__init__()
        self.state = state
        self.num_points = int(num_points)
        self.r_max = float(r_max)
        self.config = config
        self.seed = seed

    def run(self) -> None:
        try:
            result = sample(self.state, self.num_points, self.r_max, rng=self.seed, config=self.config)
        except (OrbitalError, ValueError) as e:
            logger.error("Sampling failed for %s: %s", self.state.label, e)
            self.error_occurred.emit(str(e))
            return
        self.result_ready.emit(result)


# -----------------------------
# VTK view: two lobe point sets
# -----------------------------

class OrbitalCloudView(QWidget):
    def __init__(self, render_cfg: RenderConfig, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.vtk_widget = QVTKRenderWindowInteractor(self)
        layout.addWidget(self.vtk_widget)

        self.renderer = vtkRenderer()
        self.vtk_widget.GetRenderWindow().AddRenderer(self.renderer)

        style = vtkInteractorStyleTrackballCamera()
        self.vtk_widget.GetRenderWindow().GetInteractor().SetInteractorStyle(style)

        self.render_cfg = render_cfg
        self.renderer.SetBackground(*render_cfg.background)

        self._interactor_initialized = False
        self._camera_initialized = False

        self._mapper_pos = vtkPolyDataMapper()
        self._mapper_neg = vtkPolyDataMapper()
        self._actor_pos = vtkActor()
        self._actor_neg = vtkActor()
        self._actor_pos.SetMapper(self._mapper_pos)
        self._actor_neg.SetMapper(self._mapper_neg)
        self.renderer.AddActor(self._actor_pos)
        self.renderer.AddActor(self._actor_neg)
        self.apply_render_config(render_cfg)

    def showEvent(self, event) -> None:
        super().showEvent(event)
        if not self._interactor_initialized:
            interactor = self.vtk_widget.GetRenderWindow().GetInteractor()
            if interactor is not None:
                interactor.Initialize()
            self._interactor_initialized = True

    def apply_render_config(self, cfg: RenderConfig) -> None:
        self.render_cfg = cfg
        for actor, color in ((self._actor_pos, cfg.color_pos), (self._actor_neg, cfg.color_neg)):
            prop = actor.GetProperty()
            prop.SetColor(*color)
            prop.SetPointSize(float(cfg.point_size))
            prop.SetOpacity(float(cfg.opacity))
            prop.SetRenderPointsAsSpheres(True)
        self.renderer.SetBackground(*cfg.background)
        self.vtk_widget.GetRenderWindow().Render()

    def show_result(self, result: SampleResult) -> None:
        # Build both inputs before touching the mappers so a render never mixes clouds.
        poly_pos = points_to_polydata(result.positions_pos)
        poly_neg = points_to_polydata(result.positions_neg)

        self._mapper_pos.SetInputData(poly_pos)
        self._mapper_neg.SetInputData(poly_neg)

        if not self._camera_initialized:
            self.renderer.ResetCamera()
            self._camera_initialized = True
        self.vtk_widget.GetRenderWindow().Render()

    def reset_camera(self) -> None:
        self.renderer.ResetCamera()
        self._camera_initialized = True
        self.vtk_widget.GetRenderWindow().Render()


# -----------------------------
# Main window
# -----------------------------

class MainWindow(QMainWindow):
    def __init__(self, render_cfg: Optional[RenderConfig] = None) -> None:
        super().__init__()
        self.setWindowTitle("Hydrogen Orbital Point Cloud")
        self.resize(1200, 800)

        self.render_cfg = render_cfg or RenderConfig()
        self.sampler_cfg = SamplerConfig(workers=os.cpu_count() or 1)

        self.view3d = OrbitalCloudView(self.render_cfg, self)
        self.result: Optional[SampleResult] = None

        self._worker: Optional[SamplingWorker] = None
        self._pending = False

        self._build_ui()
        self.regenerate()

    def _build_ui(self) -> None:
        cfg = self.render_cfg
        central = QWidget()
        root = QHBoxLayout(central)
        root.setContentsMargins(4, 4, 4, 4)

        splitter = QSplitter(Qt.Horizontal)
        splitter.addWidget(self.view3d)

        controls = QWidget()
        v = QVBoxLayout(controls)

        # Quantum numbers
        g_state = QGroupBox("State")
        f_state = QFormLayout(g_state)
        self.spin_n = QSpinBox(); self.spin_n.setRange(1, cfg.n_max); self.spin_n.setValue(cfg.n)
        self.spin_l = QSpinBox(); self.spin_l.setRange(0, cfg.n - 1); self.spin_l.setValue(cfg.l)
        self.spin_m = QSpinBox(); self.spin_m.setRange(-cfg.n_max, cfg.n_max); self.spin_m.setValue(cfg.m)
        self.spin_n.editingFinished.connect(self._on_state_changed)
        self.spin_l.editingFinished.connect(self._on_state_changed)
        self.spin_m.editingFinished.connect(self._on_state_changed)
        f_state.addRow("n", self.spin_n)
        f_state.addRow("l", self.spin_l)
        f_state.addRow("m", self.spin_m)
        v.addWidget(g_state)

        # Sampling
        g_samp = QGroupBox("Sampling")
        f_samp = QFormLayout(g_samp)
        self.spin_points = QSpinBox()
        self.spin_points.setRange(1000, 50000); self.spin_points.setSingleStep(1000); self.spin_points.setValue(cfg.num_points)
        self.spin_points.editingFinished.connect(self.regenerate)
        f_samp.addRow("Number of points", self.spin_points)

        self.spin_rmax = QDoubleSpinBox()
        self.spin_rmax.setRange(1.0, 200.0); self.spin_rmax.setValue(cfg.r_max); self.spin_rmax.setSuffix(" a₀")
        self.spin_rmax.editingFinished.connect(self.regenerate)
        f_samp.addRow("r max", self.spin_rmax)

        self.check_seed = QCheckBox("Fixed seed")
        self.spin_seed = QSpinBox(); self.spin_seed.setRange(0, 2**31 - 1); self.spin_seed.setValue(0)
        f_samp.addRow(self.check_seed, self.spin_seed)

        btn_regen = QPushButton("Regenerate Points")
        btn_regen.clicked.connect(self.regenerate)
        f_samp.addRow(btn_regen)

        self.lbl_stats = QLabel("--")
        self.lbl_stats.setWordWrap(True)
        self.lbl_stats.setStyleSheet("color: gray; font-size: 10px;")
        f_samp.addRow(self.lbl_stats)
        v.addWidget(g_samp)

        # View
        g_view = QGroupBox("View")
        f_view = QFormLayout(g_view)
        self.spin_psize = QDoubleSpinBox()
        self.spin_psize.setRange(0.5, 20.0); self.spin_psize.setSingleStep(0.5); self.spin_psize.setValue(cfg.point_size)
        self.spin_psize.valueChanged.connect(self._on_point_size_changed)
        f_view.addRow("Point size", self.spin_psize)

        btn_cam = QPushButton("Reset camera")
        btn_cam.clicked.connect(self.view3d.reset_camera)
        f_view.addRow(btn_cam)
        v.addWidget(g_view)

        # Radial distribution
        self.plot_radial = pg.PlotWidget()
        self.plot_radial.setLabel("bottom", "r (a₀)")
        self.plot_radial.setLabel("left", "P(r)")
        self.plot_radial.setMinimumHeight(220)
        v.addWidget(self.plot_radial)

        v.addStretch(1)

        splitter.addWidget(controls)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 1)

        root.addWidget(splitter)
        self.setCentralWidget(central)

    # -----------------------------
    # Actions
    # -----------------------------

    def _on_state_changed(self) -> None:
        n, l, m = clamp_quantum_numbers(self.spin_n.value(), self.spin_l.value(), self.spin_m.value())
        for spin in (self.spin_n, self.spin_l, self.spin_m):
            spin.blockSignals(True)
        self.spin_l.setMaximum(n - 1)
        self.spin_n.setValue(n)
        self.spin_l.setValue(l)
        self.spin_m.setValue(m)
        for spin in (self.spin_n, self.spin_l, self.spin_m):
            spin.blockSignals(False)
        self.regenerate()

    def _on_point_size_changed(self, value: float) -> None:
        self.render_cfg = replace(self.render_cfg, point_size=float(value))
        self.view3d.apply_render_config(self.render_cfg)

    def regenerate(self) -> None:
        if self._worker is not None and self._worker.isRunning():
            self._pending = True
            return

        n, l, m = clamp_quantum_numbers(self.spin_n.value(), self.spin_l.value(), self.spin_m.value())
        state = QuantumState(n=n, l=l, m=m)
        seed = int(self.spin_seed.value()) if self.check_seed.isChecked() else None

        self.lbl_stats.setText(f"sampling {state.label} ...")
        worker = SamplingWorker(state, self.spin_points.value(), self.spin_rmax.value(), self.sampler_cfg, seed)
        worker.result_ready.connect(self._on_result)
        worker.error_occurred.connect(self._on_error)
        worker.finished.connect(self._on_worker_finished)
        self._worker = worker
        worker.start()

    def _on_worker_finished(self) -> None:
        if self._pending:
            self._pending = False
            self.regenerate()

    def _on_error(self, msg: str) -> None:
        self.lbl_stats.setText("--")
        QMessageBox.critical(self, "Sampling error", msg)

    def _on_result(self, result: SampleResult) -> None:
        self.result = result
        self.view3d.show_result(result)

        st = result.stats
        frac = lobe_fractions(result)
        self.lbl_stats.setText(
            f"{result.request.state.label}: {result.num_points} pts  "
            f"(+{frac['pos']:.0%} / -{frac['neg']:.0%})\n"
            f"Pmax={st.p_max:.3e}  acceptance={st.acceptance_rate:.4f}  "
            f"exceedances={st.exceedances}  t={st.elapsed_s:.2f}s"
        )
        self._update_radial_plot(result)

    def _update_radial_plot(self, result: SampleResult) -> None:
        self.plot_radial.clear()
        hist = radial_histogram(result, n_bins=self.render_cfg.radial_bins)
        width = float(hist["r_centers"][1] - hist["r_centers"][0]) if hist["r_centers"].size > 1 else 1.0
        bars = pg.BarGraphItem(x=hist["r_centers"], height=hist["p_r"], width=width, brush=(120, 120, 200, 160))
        self.plot_radial.addItem(bars)
        try:
            curve = analytic_radial_curve(result.request.state, result.request.r_max)
        except ValueError as e:
            logger.warning("No analytic radial curve: %s", e)
            return
        self.plot_radial.plot(curve["r"], curve["p_r"], pen=pg.mkPen((255, 200, 0), width=2))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    app = QApplication(sys.argv)
    w = MainWindow()
    w.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
