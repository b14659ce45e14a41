from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework import serializers

from .space import Space
from .validation import validate_space_key, validate_space_name


class SpaceSerializer(serializers.Serializer):
    """
    Reads and writes Space entities. Writes go through the NamespaceRepository passed in
    the serializer context ('repository'); the acting user is the request user.
    """
    id = serializers.IntegerField(read_only=True)
    talk_id = serializers.IntegerField(read_only=True)
    key = serializers.CharField(max_length=32)
    name = serializers.CharField(max_length=128)
    description = serializers.CharField(max_length=1024)
    owner_username = serializers.SerializerMethodField()
    administrators = serializers.ListField(child=serializers.CharField(), required=False)
    archived = serializers.BooleanField(read_only=True)
    protected = serializers.BooleanField(required=False)

    def get_owner_username(self, obj):
        return obj.owner.get_username()

    @property
    def repository(self):
        return self.context['repository']

    def validate_key(self, value):
        try:
            return validate_space_key(value, self.repository, editing=self.instance)
        except DjangoValidationError as exc:
            raise serializers.ValidationError(exc.messages)

    def validate_name(self, value):
        try:
            return validate_space_name(value, self.repository, editing=self.instance)
        except DjangoValidationError as exc:
            raise serializers.ValidationError(exc.messages)

    def create(self, validated_data):
        """
        Extra administrators are applied as an edit by the owner right after the create,
        so such a request leaves a create and an update audit record. Both steps share one
        transaction: if the edit fails, the space is not created either.
        """
        user = self.context['request'].user
        space = Space.new_from_values(
            validated_data['key'], validated_data['name'], validated_data['description'], user
        )
        space.protected = validated_data.get('protected', False)
        administrators = validated_data.get('administrators')

        with transaction.atomic(using=self.repository.write_alias):
            namespace_id = self.repository.add_space(space, user=user)
            if administrators:
                stored = self.repository.get_space_by_id(namespace_id)
                edited = self.repository.get_space_by_id(namespace_id)
                edited.administrators = administrators
                self.repository.update_space(stored, edited, user=user)
        return self.repository.get_space_by_id(namespace_id)

    def update(self, instance, validated_data):
        user = self.context['request'].user
        edited = self.repository.get_space_by_id(instance.id)
        for attr in ('key', 'name', 'description', 'protected', 'administrators'):
            if attr in validated_data:
                setattr(edited, attr, validated_data[attr])
        self.repository.update_space(instance, edited, user=user)
        return self.repository.get_space_by_id(instance.id)


class SpaceAdminSerializer(serializers.Serializer):
    """One administrator of a space; admin_realname only when the 'realnames' context flag is set."""
    admin_id = serializers.IntegerField(source='pk')
    admin_name = serializers.CharField(source='username')
    admin_realname = serializers.SerializerMethodField()

    def get_admin_realname(self, obj):
        return obj.get_full_name() or obj.get_username()

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not self.context.get('realnames'):
            data.pop('admin_realname')
        return data
