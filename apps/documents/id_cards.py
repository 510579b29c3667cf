# documents/id_cards.py

"""
ID card rasterisation with Pillow and ZIP packaging of a batch of cards.
"""

from io import BytesIO
import logging
import zipfile

from PIL import Image, ImageColor, ImageDraw, ImageFont, ImageOps

logger = logging.getLogger(__name__)

# CR80 portrait at 300 dpi
CARD_WIDTH = 638
CARD_HEIGHT = 1012
HEADER_HEIGHT = 190
PHOTO_SIZE = (260, 300)
MARGIN = 40
ZIP_FOLDER = 'id_cards'


def _font(size):
    return ImageFont.load_default(size=size)


def card_filename(name):
    return f"{'_'.join((name or 'card').split())}_ID.png"


class IDCardRenderer:
    """
    Draws one card per student or educator using a school's IDCardSettings.
    """

    def __init__(self, settings):
        self.settings = settings
        self.primary = ImageColor.getrgb(settings.primary_color or '#1E40AF')
        self.text = ImageColor.getrgb(settings.text_color or '#0F172A')

    # -------------------------------------------------------------------------
    # Card content
    # -------------------------------------------------------------------------

    def student_lines(self, student):
        s = self.settings
        lines = [('Adm. No', student.admission_number)]
        if student.school_class_id:
            placement = student.school_class.name
            if student.section_id:
                placement = f"{placement} - {student.section.name}"
            lines.append(('Class', placement))
        if s.show_dob and student.date_of_birth:
            lines.append(('DOB', student.date_of_birth.strftime('%d-%m-%Y')))
        if s.show_blood_group and student.blood_group:
            lines.append(('Blood', student.blood_group))
        if s.show_parent_phone and student.parent_id:
            lines.append(('Parent', student.parent.phone))
        if s.show_address and student.address:
            lines.append(('Address', student.address[:40]))
        return lines

    def educator_lines(self, educator):
        lines = [('Emp. ID', educator.employee_id)]
        if educator.designation:
            lines.append(('Role', educator.designation))
        if educator.phone:
            lines.append(('Phone', educator.phone))
        return lines

    # -------------------------------------------------------------------------
    # Drawing
    # -------------------------------------------------------------------------

    def _photo(self, entity):
        photo = getattr(entity, 'photo', None)
        if photo:
            try:
                with photo.open('rb') as handle:
                    image = Image.open(handle)
                    image.load()
                return ImageOps.fit(image.convert('RGB'), PHOTO_SIZE)
            except (OSError, ValueError) as e:
                logger.warning(f"Could not load photo for {entity.pk}: {e}")
        placeholder = Image.new('RGB', PHOTO_SIZE, (226, 232, 240))
        draw = ImageDraw.Draw(placeholder)
        initials = ''.join(part[0] for part in entity.name.split()[:2]).upper()
        draw.text((PHOTO_SIZE[0] // 2, PHOTO_SIZE[1] // 2), initials, fill=self.primary, font=_font(96), anchor='mm')
        return placeholder

    def render(self, entity, lines, card_label):
        s = self.settings
        card = Image.new('RGB', (CARD_WIDTH, CARD_HEIGHT), 'white')
        draw = ImageDraw.Draw(card)

        draw.rectangle([0, 0, CARD_WIDTH, HEADER_HEIGHT], fill=self.primary)
        draw.text((CARD_WIDTH // 2, 60), s.school_display_name or '', fill='white', font=_font(34), anchor='mm')
        if s.school_address:
            draw.text((CARD_WIDTH // 2, 105), s.school_address, fill='white', font=_font(20), anchor='mm')
        draw.text((CARD_WIDTH // 2, 150), f"{s.header_text} - {card_label}", fill='white', font=_font(24), anchor='mm')

        photo_left = (CARD_WIDTH - PHOTO_SIZE[0]) // 2
        card.paste(self._photo(entity), (photo_left, HEADER_HEIGHT + 30))

        y = HEADER_HEIGHT + 30 + PHOTO_SIZE[1] + 40
        draw.text((CARD_WIDTH // 2, y), entity.name, fill=self.text, font=_font(36), anchor='mm')
        y += 60
        for label, value in lines:
            draw.text((MARGIN, y), f"{label}:", fill=self.primary, font=_font(24))
            draw.text((MARGIN + 150, y), str(value), fill=self.text, font=_font(24))
            y += 40

        footer = s.validity_text or (f"Valid for {s.current_academic_year}" if s.current_academic_year else '')
        draw.rectangle([0, CARD_HEIGHT - 70, CARD_WIDTH, CARD_HEIGHT], fill=self.primary)
        draw.text((CARD_WIDTH // 2, CARD_HEIGHT - 35), footer, fill='white', font=_font(20), anchor='mm')
        return card

    def render_student(self, student):
        return self.render(student, self.student_lines(student), 'STUDENT')

    def render_educator(self, educator):
        return self.render(educator, self.educator_lines(educator), 'STAFF')

    @staticmethod
    def to_png(image):
        buffer = BytesIO()
        image.save(buffer, format='PNG')
        return buffer.getvalue()


def build_id_card_zip(renderer, entities, card_type='student'):
    """
    Render every entity and package the PNGs under id_cards/ in a ZIP.

    Returns:
        bytes: the ZIP archive
    """
    render = renderer.render_student if card_type == 'student' else renderer.render_educator
    used = set()
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
        for entity in entities:
            filename = card_filename(entity.name)
            if filename in used:
                filename = card_filename(f"{entity.name} {str(entity.pk)[:8]}")
            used.add(filename)
            archive.writestr(f"{ZIP_FOLDER}/{filename}", IDCardRenderer.to_png(render(entity)))
    logger.info(f"Packaged {len(used)} {card_type} ID card(s)")
    return buffer.getvalue()
