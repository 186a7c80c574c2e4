from skillswap import db

NIVELES = ('Principiante', 'Intermedio', 'Avanzado')
MODALIDADES = ('Online', 'Presencial', 'Híbrido')


def _in_list(column, values):
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class Usuario(db.Model):
    __tablename__ = 'usuarios'

    id_usuario = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(100), nullable=False)
    apellido = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password = db.Column(db.Text, nullable=False)
    avatar_url = db.Column(db.Text, nullable=True)
    rating = db.Column(db.Numeric(3, 2), nullable=False, server_default='0')
    total_intercambios = db.Column(db.Integer, nullable=False, server_default='0')
    es_verificado = db.Column(db.Boolean, nullable=False, server_default=db.false())
    creado_en = db.Column(db.DateTime, nullable=False, server_default=db.func.now())
    actualizado_en = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    __table_args__ = (
        db.CheckConstraint('rating >= 0 AND rating <= 5', name='ck_usuarios_rating'),
    )


class Skill(db.Model):
    __tablename__ = 'skills'

    id_skill = db.Column(db.Integer, primary_key=True)
    id_usuario = db.Column(db.Integer, db.ForeignKey('usuarios.id_usuario'), nullable=False, index=True)
    titulo = db.Column(db.String(200), nullable=False)
    descripcion = db.Column(db.Text, nullable=False)
    categoria = db.Column(db.String(100), nullable=False)
    nivel = db.Column(db.String(20), nullable=False)
    modalidad = db.Column(db.String(20), nullable=False)
    duracion_horas = db.Column(db.Integer, nullable=True)
    imagen_url = db.Column(db.Text, nullable=True)
    precio = db.Column(db.Numeric(10, 2), nullable=False)
    # Aggregates, not written by any handler yet
    rating = db.Column(db.Numeric(3, 2), nullable=False, server_default='0')
    total_resenas = db.Column(db.Integer, nullable=False, server_default='0')
    es_activo = db.Column(db.Boolean, nullable=False, server_default=db.true())
    creado_en = db.Column(db.DateTime, nullable=False, server_default=db.func.now())
    actualizado_en = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    __table_args__ = (
        db.CheckConstraint(_in_list('nivel', NIVELES), name='ck_skills_nivel'),
        db.CheckConstraint(_in_list('modalidad', MODALIDADES), name='ck_skills_modalidad'),
        db.CheckConstraint('precio >= 0', name='ck_skills_precio'),
        db.CheckConstraint('duracion_horas IS NULL OR duracion_horas >= 1', name='ck_skills_duracion'),
        db.Index('ix_skills_activo_creado', 'es_activo', 'creado_en'),
    )


class Favorito(db.Model):
    __tablename__ = 'favoritos'

    id_favorito = db.Column(db.Integer, primary_key=True)
    id_usuario = db.Column(db.Integer, db.ForeignKey('usuarios.id_usuario'), nullable=False)
    id_skill = db.Column(db.Integer, db.ForeignKey('skills.id_skill'), nullable=False)
    creado_en = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    __table_args__ = (
        db.UniqueConstraint('id_usuario', 'id_skill', name='uq_favoritos_usuario_skill'),
    )


class Carrito(db.Model):
    __tablename__ = 'carrito'

    id_carrito = db.Column(db.Integer, primary_key=True)
    id_usuario = db.Column(db.Integer, db.ForeignKey('usuarios.id_usuario'), nullable=False, unique=True)
    creado_en = db.Column(db.DateTime, nullable=False, server_default=db.func.now())


class ItemCarrito(db.Model):
    __tablename__ = 'items_carrito'

    id_item = db.Column(db.Integer, primary_key=True)
    id_carrito = db.Column(db.Integer, db.ForeignKey('carrito.id_carrito', ondelete='CASCADE'), nullable=False)
    id_skill = db.Column(db.Integer, db.ForeignKey('skills.id_skill'), nullable=False)
    cantidad = db.Column(db.Integer, nullable=False, server_default='1')
    # Price captured when the item was first added
    precio_unitario = db.Column(db.Numeric(10, 2), nullable=False)
    creado_en = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    __table_args__ = (
        db.UniqueConstraint('id_carrito', 'id_skill', name='uq_items_carrito_carrito_skill'),
        db.CheckConstraint('cantidad >= 1', name='ck_items_carrito_cantidad'),
    )
