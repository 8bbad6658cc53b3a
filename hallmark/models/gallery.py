from hallmark import db
from datetime import datetime

GALLERY_CATEGORIES = ('CAROUSEL', 'LOGO', 'FACILITIES', 'EVENTS', 'STUDENTS', 'TEACHERS', 'ACHIEVEMENTS', 'GENERAL')


class Gallery(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500), nullable=False)
    category = db.Column(db.String(20), default='GENERAL', nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    order = db.Column(db.Integer, default=0)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'image_url': self.image_url,
            'category': self.category,
            'is_active': self.is_active,
            'order': self.order,
            'school_id': self.school_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
