#!/usr/bin/env python3

"""
Map subtitle style settings to ASS renderer parameters.
"""

# Standard Library
import dataclasses

#============================================

NAMED_COLORS = {
	'white': 'FFFFFF',
	'black': '000000',
	'yellow': '00FFFF',
	'red': '0000FF',
	'green': '00FF00',
	'blue': 'FF0000',
}

KARAOKE_SECONDARY_COLOR = '&H00808080'

# font size and vertical margin scale per aspect ratio
ASPECT_FONT_SCALE = {
	'9:16': 0.5,
	'4:5': 0.7,
	'16:9': 1.0,
	'1:1': 0.85,
}
ASPECT_MARGIN_SCALE = {
	'9:16': 1.2,
	'4:5': 1.0,
	'16:9': 1.0,
	'1:1': 1.0,
}

ALIGNMENT_BOTTOM = 2
ALIGNMENT_MIDDLE = 5
ALIGNMENT_TOP = 8

#============================================

@dataclasses.dataclass(frozen=True)
class SubtitleStyle:
	font_family: str = 'Arial'
	font_size: float = 48
	font_color: str = 'white'
	outline_color: str = 'black'
	outline_width: float = 2
	shadow_depth: float = 0
	shadow_color: str = None
	background_color: str = 'transparent'
	margin_v: int = 50
	alignment: int = ALIGNMENT_BOTTOM
	bold: bool = False
	italic: bool = False
	line_spacing: float = 0
	animation: str = 'none'

	#============================
	@property
	def karaoke(self) -> bool:
		return self.animation == 'karaoke'

	#============================
	def scaled_font_size(self, aspect_ratio: str) -> int:
		scale = ASPECT_FONT_SCALE.get(aspect_ratio, 1.0)
		return max(1, int(round(self.font_size * scale)))

	#============================
	def scaled_margin(self, aspect_ratio: str) -> int:
		scale = ASPECT_MARGIN_SCALE.get(aspect_ratio, 1.0)
		return int(round(self.margin_v * scale))

#============================================

def color_to_ass(color: str, opacity=None) -> str:
	"""
	Convert a color name, #RRGGBB, or color@opacity into ASS &HAABBGGRR.
	"""
	if color is None:
		return '&H00FFFFFF'
	color = str(color).strip()
	if opacity is None and '@' in color:
		(color, opacity) = color.split('@', 1)
	if opacity is None:
		opacity = 1.0
	alpha = int(round((1.0 - float(opacity)) * 255))
	alpha = min(255, max(0, alpha))
	alpha_hex = f"{alpha:02X}"
	named = NAMED_COLORS.get(color.lower())
	if named is not None:
		return f"&H{alpha_hex}{named}"
	if color.startswith('#') and len(color) == 7:
		red = color[1:3]
		green = color[3:5]
		blue = color[5:7]
		return f"&H{alpha_hex}{blue}{green}{red}".upper()
	return '&H00FFFFFF'

#============================================

def resolve_alignment(style: SubtitleStyle) -> tuple:
	if style.alignment == ALIGNMENT_MIDDLE:
		return (ALIGNMENT_MIDDLE, 0)
	if style.alignment == ALIGNMENT_TOP:
		return (ALIGNMENT_TOP, style.margin_v)
	return (ALIGNMENT_BOTTOM, style.margin_v)

#============================================

def build_force_style(style: SubtitleStyle, font_size: int, margin_v: int) -> str:
	(alignment, _margin) = resolve_alignment(style)
	if alignment == ALIGNMENT_MIDDLE:
		margin_v = 0
	force_style = f"Alignment={alignment},FontSize={font_size},MarginV={margin_v}"
	force_style += f",FontName={style.font_family}"
	force_style += f",PrimaryColour={color_to_ass(style.font_color)}"
	force_style += f",OutlineColour={color_to_ass(style.outline_color)}"
	force_style += f",Outline={style.outline_width:g}"
	if style.bold:
		force_style += ",Bold=1"
	if style.italic:
		force_style += ",Italic=1"
	if style.background_color and style.background_color != 'transparent':
		force_style += f",BackColour={color_to_ass(style.background_color)}"
		# box that adapts to the text width
		force_style += ",BorderStyle=4"
	if style.line_spacing:
		force_style += f",Spacing={style.line_spacing:g}"
	return force_style

#============================================

def format_ass_time(total_ms: int) -> str:
	total_cs = max(0, int(total_ms)) // 10
	hours = total_cs // 360000
	minutes = (total_cs // 6000) % 60
	seconds = (total_cs // 100) % 60
	centis = total_cs % 100
	return f"{hours:d}:{minutes:02d}:{seconds:02d}.{centis:02d}"

#============================================

def build_ass_document(cue_set, style: SubtitleStyle, width: int, height: int,
	font_size: int, margin_v: int) -> str:
	"""
	Render a composed cue set as an ASS subtitle document.
	"""
	(alignment, _margin) = resolve_alignment(style)
	if alignment == ALIGNMENT_MIDDLE:
		margin_v = 0
	primary = color_to_ass(style.font_color)
	outline = color_to_ass(style.outline_color)
	secondary = primary
	if cue_set.karaoke:
		# unsung words stay gray until highlighted
		secondary = KARAOKE_SECONDARY_COLOR
	shadow = '&H00000000'
	if style.shadow_color:
		shadow = color_to_ass(style.shadow_color)
	bold = -1 if style.bold else 0
	italic = -1 if style.italic else 0
	lines = []
	lines.append("[Script Info]")
	lines.append("Title: Generated by reelwright")
	lines.append("ScriptType: v4.00+")
	lines.append(f"PlayResX: {width}")
	lines.append(f"PlayResY: {height}")
	lines.append("")
	lines.append("[V4+ Styles]")
	lines.append(
		"Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, "
		"OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, "
		"ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, "
		"MarginR, MarginV, Encoding"
	)
	lines.append(
		f"Style: Default,{style.font_family},{font_size},{primary},{secondary},"
		f"{outline},{shadow},{bold},{italic},0,0,100,100,{style.line_spacing:g},0,1,"
		f"{style.outline_width:g},{style.shadow_depth:g},{alignment},0,0,{margin_v},1"
	)
	lines.append("")
	lines.append("[Events]")
	lines.append("Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text")
	for cue in cue_set.cues:
		lines.append(
			f"Dialogue: 0,{format_ass_time(cue.start_ms)},{format_ass_time(cue.end_ms)},"
			f"Default,,0,0,0,,{cue.text}"
		)
	return "\n".join(lines) + "\n"
