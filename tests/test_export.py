"""Tests for export module."""
import json
import os

import pytest

from radius_dish.contracts import TileAddress
from radius_dish.export import (
    DishRequest,
    ExportConfig,
    FreeUseQuota,
    export_all_sections,
    export_section,
    export_sections,
    section_filename,
)
from radius_dish.stl_writer import read_stl_triangle_count

FAST = ExportConfig(segments=4)


class TestResolve:

    def test_valid_request(self, guitar_request):
        dish, issues = guitar_request.resolve()
        assert dish is not None
        assert dish.sphere_radius == pytest.approx(4267.2)
        assert issues == []

    def test_unparseable_radius(self):
        request = DishRequest("fourteen feet", 600, 600, 50, 50)
        dish, issues = request.resolve()
        assert dish is None
        assert [i.code for i in issues] == ["radius_unparseable"]
        assert issues[0].message == "Can't parse radius, try e.g. 14ft or 4267mm"

    def test_radius_too_small(self):
        dish, issues = DishRequest("200mm", 600, 600, 50, 50).resolve()
        assert dish is None
        assert issues[0].code == "radius_too_small"

    def test_bad_sections(self):
        dish, issues = DishRequest("14ft", 600, 600, 50, 50, 0, 2).resolve()
        assert dish is None
        assert "bad_sections" in [i.code for i in issues]

    def test_cap_through_base_refused(self):
        # 1000mm sphere over a 250mm curve radius sags 31.75mm, below a 20mm base
        dish, issues = DishRequest("1000mm", 600, 600, 50, 20, 2, 2).resolve()
        assert dish is None
        assert [i.code for i in issues] == ["cap_through_base"]
        assert issues[0].is_error

    def test_fractional_sections(self):
        dish, issues = DishRequest("14ft", 600, 600, 50, 50, 2.5, 1).resolve()
        assert dish is None
        assert [i.code for i in issues] == ["bad_sections"]


class TestFilenames:

    def test_section_filename(self):
        assert section_filename("14ft", TileAddress(0, 1)) == "radius_dish_14ft_C1R2.stl"

    def test_whitespace_replaced(self):
        name = section_filename(" 14 ft ", TileAddress(1, 0), prefix="dish")
        assert name == "dish_14_ft_C2R1.stl"


class TestFreeUseQuota:

    def test_three_free_uses(self):
        quota = FreeUseQuota()
        assert [quota() for _ in range(4)] == [True, True, True, False]
        assert quota.remaining == 0

    def test_subscribed_is_unlimited(self):
        quota = FreeUseQuota(subscribed=True)
        assert all(quota() for _ in range(10))
        assert quota.used == 0


class TestExport:

    def test_exports_every_tile(self, guitar_request, tmp_path):
        result = export_all_sections(guitar_request, str(tmp_path), config=FAST)

        assert result.ok
        assert [t.label for t in result.tiles] == ["C1R1", "C2R1", "C1R2", "C2R2"]
        for tile in result.tiles:
            assert os.path.isfile(tile.path)
            with open(tile.path, "rb") as f:
                data = f.read()
            assert read_stl_triangle_count(data) == tile.triangle_count == 2 * 16 + 32 + 2
            assert len(data) == 84 + 50 * tile.triangle_count
            assert tile.volume_mm3 > 0
        assert os.path.basename(result.paths[2]) == "radius_dish_14ft_C1R2.stl"

    def test_tile_volumes_add_up(self, guitar_request, tmp_path):
        result = export_all_sections(guitar_request, str(tmp_path), config=FAST)
        total = sum(t.volume_mm3 for t in result.tiles)
        assert total < 600 * 600 * 50
        assert total > 600 * 600 * (50 - guitar_request.resolve()[0].sag)

    def test_manifest(self, guitar_request, tmp_path):
        result = export_all_sections(guitar_request, str(tmp_path), config=FAST)
        manifest = json.loads((tmp_path / "manifest.json").read_text(encoding="utf-8"))

        assert result.manifest_path == str(tmp_path / "manifest.json")
        assert manifest["input"]["radius"] == "14ft"
        assert manifest["grid"] == {"sections_x": 2, "sections_y": 2}
        assert manifest["mesh"]["quality"] == "Draft"
        assert manifest["geometry"]["sag_mm"] == pytest.approx(
            guitar_request.resolve()[0].sag
        )
        assert len(manifest["tiles"]) == 4
        first = manifest["tiles"][0]
        assert first["path"] == "radius_dish_14ft_C1R1.stl"
        assert first["plan_bounds_mm"] == [-300.0, -300.0, 0.0, 0.0]
        assert manifest["layout_dxf"] is None

    def test_single_section(self, guitar_request, tmp_path):
        result = export_section(guitar_request, 1, 0, str(tmp_path), config=FAST)
        assert result.ok
        assert [t.label for t in result.tiles] == ["C2R1"]

    def test_selected_sections_share_manifest(self, guitar_request, tmp_path):
        quota = FreeUseQuota(free_uses=1)
        addresses = [TileAddress(0, 0), TileAddress(1, 1)]
        result = export_sections(
            guitar_request, addresses, str(tmp_path), config=FAST, quota=quota
        )
        assert result.ok
        assert quota.used == 1
        manifest = json.loads((tmp_path / "manifest.json").read_text(encoding="utf-8"))
        assert [t["label"] for t in manifest["tiles"]] == ["C1R1", "C2R2"]

    def test_tile_outside_grid(self, guitar_request, tmp_path):
        with pytest.raises(ValueError):
            export_section(guitar_request, 2, 0, str(tmp_path), config=FAST)

    def test_layout_dxf(self, guitar_request, tmp_path):
        config = ExportConfig(segments=4, export_layout_dxf=True)
        result = export_all_sections(guitar_request, str(tmp_path), config=config)
        assert result.layout_path is not None
        assert os.path.isfile(result.layout_path)
        assert result.layout_path.endswith("radius_dish_14ft_layout.dxf")

    def test_no_manifest(self, guitar_request, tmp_path):
        config = ExportConfig(segments=4, write_manifest=False)
        result = export_all_sections(guitar_request, str(tmp_path), config=config)
        assert result.manifest_path is None
        assert not (tmp_path / "manifest.json").exists()


class TestRefusals:
    """Refused exports write nothing."""

    def test_invalid_request(self, tmp_path):
        out = tmp_path / "out"
        quota = FreeUseQuota()
        request = DishRequest("abc", 600, 600, 50, 50, 2, 2)
        result = export_all_sections(request, str(out), config=FAST, quota=quota)

        assert result.status == "invalid"
        assert result.tiles == []
        assert not out.exists()
        assert quota.used == 0

    def test_quota_exhausted(self, guitar_request, tmp_path):
        quota = FreeUseQuota(free_uses=1)
        first = export_section(guitar_request, 0, 0, str(tmp_path / "a"), FAST, quota)
        second = export_section(guitar_request, 0, 0, str(tmp_path / "b"), FAST, quota)

        assert first.ok
        assert second.status == "quota_exceeded"
        assert second.tiles == []
        assert not (tmp_path / "b").exists()

    def test_cap_through_base(self, tmp_path):
        out = tmp_path / "out"
        quota = FreeUseQuota()
        request = DishRequest("1000mm", 600, 600, 50, 20, 2, 2)
        result = export_all_sections(request, str(out), config=FAST, quota=quota)

        assert result.status == "invalid"
        assert result.tiles == []
        assert [i.code for i in result.issues] == ["cap_through_base"]
        assert not out.exists()
        assert quota.used == 0

    def test_empty_tile_list(self, guitar_request, tmp_path):
        quota = FreeUseQuota()
        with pytest.raises(ValueError):
            export_sections(guitar_request, [], str(tmp_path / "out"), FAST, quota)
        assert quota.used == 0
        assert not (tmp_path / "out").exists()

    def test_denying_quota(self, guitar_request, tmp_path):
        result = export_all_sections(
            guitar_request, str(tmp_path / "out"), config=FAST, quota=lambda: False
        )
        assert result.status == "quota_exceeded"
        assert not (tmp_path / "out").exists()
